"""Tests for shell suggestion parsing, display and confirmation."""

import io
import subprocess

import pytest
from rich.console import Console

from gptcli.providers.simulated import SimulatedAdapter
from gptcli.shell import (
    ShellSuggestion,
    ShellSuggestionError,
    build_shell_prompt,
    confirm_and_run,
    display_suggestion,
    parse_shell_suggestion,
    suggest_command,
)


def make_console():
    return Console(file=io.StringIO(), width=80, color_system=None)


class FakeRun:
    def __init__(self, returncode=0):
        self.returncode = returncode
        self.calls = []

    def __call__(self, command, shell=False):
        self.calls.append((command, shell))
        return subprocess.CompletedProcess(command, self.returncode)


class TestParseShellSuggestion:
    def test_bare_json(self):
        s = parse_shell_suggestion(
            '{"command": "ls -la", "safety_level": "safe", '
            '"explanation": "lists files", "reasoning": "read only"}'
        )
        assert s == ShellSuggestion("ls -la", "safe", "lists files", "read only")

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"command": "rm -rf build", "safety_level": "dangerous"}\n```\n'
        s = parse_shell_suggestion(text)
        assert s.command == "rm -rf build"
        assert s.is_dangerous

    def test_json_inside_prose(self):
        text = 'Sure! {"command": "mkdir out", "safety_level": "Moderate"} Hope it helps.'
        s = parse_shell_suggestion(text)
        assert s.safety_level == "moderate"
        assert s.explanation == ""

    def test_no_json(self):
        with pytest.raises(ShellSuggestionError):
            parse_shell_suggestion("I cannot help with that.")

    def test_missing_command(self):
        with pytest.raises(ShellSuggestionError, match="no command"):
            parse_shell_suggestion('{"command": "", "safety_level": "safe"}')

    def test_invalid_safety_level(self):
        with pytest.raises(ShellSuggestionError, match="safety level"):
            parse_shell_suggestion('{"command": "ls", "safety_level": "spicy"}')


class TestSuggestCommand:
    def test_prompt_carries_instructions(self):
        prompt = build_shell_prompt("list files")
        assert '"safety_level"' in prompt
        assert prompt.endswith("User request: list files")

    @pytest.mark.asyncio
    async def test_simulated_reply(self):
        adapter = SimulatedAdapter()
        s = await suggest_command(adapter, "show disk usage")
        assert s.command == "du -sh * | sort -h"
        assert s.safety_level == "safe"
        assert adapter.prompts[0].endswith("User request: show disk usage")


class TestConfirmAndRun:
    def test_declined(self):
        run = FakeRun()
        console = make_console()
        status = confirm_and_run(
            console, ShellSuggestion("ls", "safe"), ask=lambda _: "n", run=run
        )
        assert status is None
        assert run.calls == []
        assert "Not executed" in console.file.getvalue()

    def test_closed_stdin_declines(self):
        """End of input at the prompt counts as "no"."""
        run = FakeRun()

        def ask(prompt):
            raise EOFError

        for level in ("safe", "dangerous"):
            status = confirm_and_run(
                make_console(), ShellSuggestion("ls", level), ask=ask, run=run
            )
            assert status is None
        assert run.calls == []

    def test_accepted(self):
        run = FakeRun(returncode=3)
        status = confirm_and_run(
            make_console(), ShellSuggestion("ls", "safe"), ask=lambda _: "Y", run=run
        )
        assert status == 3
        assert run.calls == [("ls", True)]

    def test_dangerous_needs_full_yes(self):
        run = FakeRun()
        suggestion = ShellSuggestion("rm -rf /tmp/x", "dangerous")
        prompts = []

        def ask(prompt):
            prompts.append(prompt)
            return "y"

        assert confirm_and_run(make_console(), suggestion, ask=ask, run=run) is None
        assert "yes" in prompts[0]
        assert confirm_and_run(make_console(), suggestion, ask=lambda _: "yes", run=run) == 0
        assert len(run.calls) == 1


class TestDisplaySuggestion:
    def test_panel_contents(self):
        console = make_console()
        display_suggestion(
            console, ShellSuggestion("ls -la", "moderate", "lists files", "harmless")
        )
        output = console.file.getvalue()
        assert "$ ls -la" in output
        assert "moderate" in output
        assert "lists files" in output
        assert "harmless" in output
