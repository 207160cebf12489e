"""Shell suggestion mode: ask for one command, show its risk, maybe run it."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from gptcli.core.errors import GptCliError

if TYPE_CHECKING:
    from gptcli.providers.base import StreamAdapter

logger = logging.getLogger(__name__)

SAFETY_LEVELS = ("safe", "moderate", "dangerous")

SHELL_TEMPERATURE = 0.1

SHELL_SYSTEM_PROMPT = """\
You are a shell command assistant. Given a user request, suggest a bash/shell \
command that accomplishes their goal.

IMPORTANT: You must respond with ONLY a valid JSON object in this exact format:
{
  "command": "the actual shell command",
  "safety_level": "safe|moderate|dangerous",
  "explanation": "brief explanation of what the command does",
  "reasoning": "explanation of why this safety level was assigned"
}

Safety level guidelines:
- "safe": Commands that only read data, display information, or perform non-destructive operations
- "moderate": Commands that modify files/directories in controlled ways, install packages, or change configuration
- "dangerous": Commands that can delete data, modify system files, change permissions, or affect system security
"""

_SAFETY_STYLES = {
    "safe": "green",
    "moderate": "yellow",
    "dangerous": "bold red",
}

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n(.*?)\n\s*```", re.DOTALL)


class ShellSuggestionError(GptCliError):
    """The model's reply was not a usable command suggestion."""


@dataclass
class ShellSuggestion:
    """A suggested command together with its safety assessment."""

    command: str
    safety_level: str
    explanation: str = ""
    reasoning: str = ""

    @property
    def is_dangerous(self) -> bool:
        return self.safety_level == "dangerous"


def build_shell_prompt(request: str) -> str:
    """Combine the JSON instructions with the user's request."""
    return f"{SHELL_SYSTEM_PROMPT}\nUser request: {request}"


def _candidate_payloads(text: str) -> list[str]:
    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    return candidates


def parse_shell_suggestion(text: str) -> ShellSuggestion:
    """Extract a ShellSuggestion from a model reply.

    Accepts a bare JSON object, one inside a fenced block, or the first
    ``{...}`` span embedded in prose.

    Raises:
        ShellSuggestionError: If no valid suggestion can be found.
    """
    data = None
    for candidate in _candidate_payloads(text):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            break
        data = None

    if data is None:
        raise ShellSuggestionError("response did not contain a JSON object")

    command = str(data.get("command") or "").strip()
    if not command:
        raise ShellSuggestionError("suggestion has no command")

    safety_level = str(data.get("safety_level") or "").strip().lower()
    if safety_level not in SAFETY_LEVELS:
        raise ShellSuggestionError(f"invalid safety level: {safety_level!r}")

    return ShellSuggestion(
        command=command,
        safety_level=safety_level,
        explanation=str(data.get("explanation") or ""),
        reasoning=str(data.get("reasoning") or ""),
    )


async def suggest_command(adapter: StreamAdapter, request: str) -> ShellSuggestion:
    """Ask *adapter* for a command that fulfils *request*."""
    logger.debug("Shell mode request: %s", request)
    reply = await adapter.complete(build_shell_prompt(request))
    return parse_shell_suggestion(reply)


def display_suggestion(console: Console, suggestion: ShellSuggestion) -> None:
    """Print the suggestion in a panel colored by its safety level."""
    style = _SAFETY_STYLES[suggestion.safety_level]
    body = Text()
    body.append("$ ", style="dim")
    body.append(suggestion.command, style="bold")
    if suggestion.explanation:
        body.append(f"\n\n{suggestion.explanation}")
    if suggestion.reasoning:
        body.append(f"\n{suggestion.reasoning}", style="dim")
    console.print(
        Panel(
            body,
            title=f"[{style}]{suggestion.safety_level}[/{style}]",
            border_style=style,
        )
    )


def confirm_and_run(
    console: Console,
    suggestion: ShellSuggestion,
    ask: Callable[[str], str] = input,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> int | None:
    """Ask before running the suggested command.

    Dangerous commands need a literal ``yes``; the others accept ``y``.

    Returns:
        The command's exit status, or None if the user declined.
    """
    if suggestion.is_dangerous:
        prompt = "This command is dangerous. Type 'yes' to run it: "
    else:
        prompt = "Run this command? [y/N] "
    try:
        answer = ask(prompt).strip().lower()
    except EOFError:
        # stdin closed or not interactive
        answer = ""

    if suggestion.is_dangerous:
        accepted = answer == "yes"
    else:
        accepted = answer in ("y", "yes")

    if not accepted:
        console.print("[dim]Not executed.[/dim]")
        return None

    logger.info("Running suggested command: %s", suggestion.command)
    result = run(suggestion.command, shell=True)
    return result.returncode
