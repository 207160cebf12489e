"""Command-line entry point for gpt-cli."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING, TextIO

from rich.console import Console

from gptcli import __version__
from gptcli.config import CliConfig, load_config
from gptcli.core.errors import GptCliError
from gptcli.core.runner import run_streaming
from gptcli.core.stream import iter_fragments
from gptcli.providers import create_adapter
from gptcli.shell import (
    SHELL_TEMPERATURE,
    confirm_and_run,
    display_suggestion,
    suggest_command,
)
from gptcli.ui.renderer import FragmentRenderer, FragmentWriter, RenderState

if TYPE_CHECKING:
    from gptcli.providers.base import StreamAdapter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpt-cli",
        description="Send prompts to a chat-completion provider and display the reply.",
    )
    parser.add_argument("prompt", nargs="*", help="Prompt text (joined with spaces)")
    parser.add_argument(
        "--provider", default=None, help="API provider (openai, copilot, gemini, simulated)"
    )
    parser.add_argument("--model", default=None, help="Model name")
    parser.add_argument(
        "--temperature", type=float, default=None, help="Temperature (0.0-2.0)"
    )
    parser.add_argument("--system", default=None, help="System prompt")
    parser.add_argument(
        "--markdown",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Render Markdown when stdout is a terminal",
    )
    parser.add_argument(
        "--stream",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Stream the reply as it arrives",
    )
    parser.add_argument(
        "--verbose", action="store_true", default=None, help="Enable debug logging"
    )
    parser.add_argument(
        "--log-file", default=None, metavar="PATH", help="Append log records to PATH"
    )
    parser.add_argument(
        "--shell",
        action="store_true",
        help="Suggest a shell command with a safety rating",
    )
    parser.add_argument(
        "--chat", action="store_true", help="Interactive chat with conversation memory"
    )
    parser.add_argument(
        "--render",
        default=None,
        metavar="PATH",
        help="Render a local Markdown file ('-' for stdin) instead of calling a provider",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(verbose: bool, log_file: str | None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    if log_file:
        logging.basicConfig(
            level=level if verbose else logging.INFO,
            format=LOG_FORMAT,
            filename=log_file,
            filemode="a",  # append mode
        )
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def apply_args(config: CliConfig, args: argparse.Namespace) -> None:
    """Command-line arguments override config."""
    if args.provider is not None:
        config.provider = args.provider
    if args.model is not None:
        config.model = args.model
    if args.temperature is not None:
        config.temperature = args.temperature
    if args.system is not None:
        config.system = args.system
    if args.markdown is not None:
        config.markdown = args.markdown
    if args.stream is not None:
        config.stream = args.stream
    if args.verbose:
        config.verbose = True
    config.apply_provider_credentials()


def make_renderer(config: CliConfig, out: TextIO) -> FragmentRenderer:
    """Rich formatting only when Markdown is on and *out* is a terminal."""
    rich = config.markdown and out.isatty()
    return FragmentRenderer(rich=rich)


async def stream_response(
    adapter: StreamAdapter,
    prompt: str,
    renderer: FragmentRenderer,
    out: TextIO,
) -> None:
    """Stream the reply to *prompt*, writing each fragment as it is rendered.

    Raises:
        GptCliError: The stream's terminal error, after all fragments that
            arrived before it have been written.
    """
    state = RenderState()
    writer = FragmentWriter(out)
    async with run_streaming(adapter, prompt) as session:
        async for fragment in session:
            writer.write(renderer.render(fragment, state))
    if session.error is not None:
        raise session.error


async def complete_response(
    adapter: StreamAdapter,
    prompt: str,
    renderer: FragmentRenderer,
    out: TextIO,
) -> None:
    text = await adapter.complete(prompt)
    out.write(renderer.render_full(text))
    out.flush()


def render_file(path: str, renderer: FragmentRenderer, out: TextIO) -> None:
    """Push a local file through the fragment pipeline."""
    state = RenderState()
    writer = FragmentWriter(out)
    if path == "-":
        for fragment in iter_fragments(sys.stdin.buffer):
            writer.write(renderer.render(fragment, state))
        return
    with open(path, "rb") as f:
        for fragment in iter_fragments(f):
            writer.write(renderer.render(fragment, state))


def run_shell_mode(config: CliConfig, request: str) -> int:
    # The JSON instructions travel in the prompt, so no system prompt.
    adapter = create_adapter(config, system_prompt="", temperature=SHELL_TEMPERATURE)
    console = Console()
    suggestion = asyncio.run(suggest_command(adapter, request))
    display_suggestion(console, suggestion)
    status = confirm_and_run(console, suggestion)
    return 0 if status is None else status


def run_chat_mode(config: CliConfig, prompt: str) -> int:
    from gptcli.chat import ChatApp

    adapter = create_adapter(config)
    ChatApp(adapter, initial_prompt=prompt).run()
    return 0


def run_prompt(config: CliConfig, prompt: str, out: TextIO) -> int:
    adapter = create_adapter(config)
    renderer = make_renderer(config, out)

    logger.debug("Using provider: %s", config.provider)
    logger.debug("Using model: %s", config.model)
    logger.debug("Temperature: %.2f", config.temperature)

    if config.stream:
        asyncio.run(stream_response(adapter, prompt, renderer, out))
    else:
        asyncio.run(complete_response(adapter, prompt, renderer, out))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the gpt-cli command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config, config_error = load_config()
    apply_args(config, args)
    configure_logging(config.verbose, args.log_file)
    if config_error:
        print(f"Warning: {config_error}", file=sys.stderr)

    if args.shell and args.chat:
        print(
            "Error: Cannot use both --shell and --chat modes simultaneously",
            file=sys.stderr,
        )
        return 1

    prompt = " ".join(args.prompt)

    try:
        if args.render is not None:
            render_file(args.render, make_renderer(config, sys.stdout), sys.stdout)
            return 0
        if args.chat:
            return run_chat_mode(config, prompt)
        if args.shell:
            if not prompt:
                print("Error: Shell mode requires a prompt argument", file=sys.stderr)
                print(
                    'Usage: gpt-cli --shell "your request for a shell command"',
                    file=sys.stderr,
                )
                return 1
            return run_shell_mode(config, prompt)
        if not prompt:
            parser.print_help()
            return 0
        return run_prompt(config, prompt, sys.stdout)
    except (GptCliError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
