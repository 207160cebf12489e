"""Interactive chat mode with conversation memory."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Input, Static

from gptcli.core.runner import StreamSession, run_streaming
from gptcli.ui.renderer import FragmentRenderer, RenderState

if TYPE_CHECKING:
    from gptcli.providers.base import StreamAdapter

logger = logging.getLogger(__name__)

CHAT_THEME = "nord"


def build_chat_prompt(history: list[tuple[str, str]], message: str) -> str:
    """Prepend the conversation so far to *message*."""
    if not history:
        return message
    turns = [f"User: {user}\nAssistant: {reply.strip()}" for user, reply in history]
    turns.append(f"User: {message}")
    return "\n\n".join(turns)


class ChatApp(App):
    TITLE = "gpt-cli chat"

    CSS = """
    #transcript {
        height: 1fr;
        padding: 0 1;
    }
    .user {
        color: $accent;
        margin-top: 1;
    }
    .assistant {
        margin-bottom: 1;
    }
    .error {
        color: $error;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
        Binding("escape", "cancel_reply", "Cancel"),
    ]

    def __init__(self, adapter: StreamAdapter, initial_prompt: str = ""):
        super().__init__()
        self.adapter = adapter
        self.initial_prompt = initial_prompt
        self.history: list[tuple[str, str]] = []
        self._renderer = FragmentRenderer(rich=False)
        self._session: StreamSession | None = None
        self._current_task: asyncio.Task | None = None

    def compose(self) -> ComposeResult:
        yield VerticalScroll(id="transcript")
        yield Input(placeholder="Message (Esc cancels a reply, Ctrl+Q quits)")
        yield Footer()

    def on_mount(self) -> None:
        self.theme = CHAT_THEME
        self.query_one(Input).focus()
        if self.initial_prompt:
            self.send(self.initial_prompt)

    @property
    def busy(self) -> bool:
        """True while a reply is streaming."""
        return self._current_task is not None and not self._current_task.done()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        message = event.value.strip()
        event.input.value = ""
        if not message:
            return
        if self.busy:
            self.notify("Wait for the current reply or press Esc", severity="warning")
            return
        self.send(message)

    def send(self, message: str) -> None:
        """Show *message* and stream the reply into the transcript."""
        transcript = self.query_one("#transcript", VerticalScroll)
        transcript.mount(Static(Text(f"> {message}"), classes="user"))
        reply = Static("", classes="assistant")
        transcript.mount(reply)
        self._current_task = asyncio.create_task(self._stream_reply(message, reply))

    async def _stream_reply(self, message: str, widget: Static) -> None:
        transcript = self.query_one("#transcript", VerticalScroll)
        prompt = build_chat_prompt(self.history, message)
        state = RenderState()
        raw: list[str] = []
        rendered: list[str] = []

        session = run_streaming(self.adapter, prompt)
        self._session = session
        try:
            async with session:
                async for fragment in session:
                    raw.append(fragment)
                    rendered.append(self._renderer.render(fragment, state))
                    widget.update(Text("".join(rendered).rstrip("\n")))
                    transcript.scroll_end(animate=False)
        finally:
            self._session = None

        if session.error is not None:
            transcript.mount(Static(Text(f"Error: {session.error}"), classes="error"))
        elif session.cancelled:
            transcript.mount(Static(Text("[cancelled]"), classes="error"))
        else:
            self.history.append((message, "".join(raw)))

    async def wait_for_reply(self) -> None:
        """Wait until the in-flight reply, if any, has finished."""
        if self._current_task is not None:
            await self._current_task

    def action_cancel_reply(self) -> None:
        """Cancel the reply that is currently streaming."""
        if self._session is not None:
            logger.debug("Cancelling chat reply")
            self._session.cancel()
