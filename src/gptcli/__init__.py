"""gpt-cli: stream chat completions to the terminal without breaking Markdown."""

from .core import FragmentBuffer, StreamSession, run_streaming
from .ui import FragmentRenderer, RenderState, render_plain

__all__ = [
    "FragmentBuffer",
    "FragmentRenderer",
    "RenderState",
    "StreamSession",
    "render_plain",
    "run_streaming",
]
__version__ = "0.1.0"
