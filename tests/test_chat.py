"""Tests for interactive chat mode."""

import asyncio

import pytest
from textual.widgets import Input, Static

from gptcli.chat import ChatApp, build_chat_prompt
from gptcli.providers.simulated import SimulatedAdapter


class TestBuildChatPrompt:
    def test_first_message_is_sent_as_is(self):
        assert build_chat_prompt([], "hello") == "hello"

    def test_history_is_prepended(self):
        history = [("hi", "Hello there!\n"), ("2+2?", "4\n")]
        assert build_chat_prompt(history, "thanks") == (
            "User: hi\nAssistant: Hello there!\n\n"
            "User: 2+2?\nAssistant: 4\n\n"
            "User: thanks"
        )


class TestChatApp:
    @pytest.mark.asyncio
    async def test_initial_prompt_streams_reply(self):
        adapter = SimulatedAdapter()
        adapter.set_default_response("First line.\n\nSecond line.\n")
        app = ChatApp(adapter, initial_prompt="hello")
        async with app.run_test() as pilot:
            await pilot.pause()
            await app.wait_for_reply()
            await pilot.pause()
            assert app.history == [("hello", "First line.\n\nSecond line.\n")]
            assert len(app.query(".user")) == 1
            assert len(app.query(".assistant")) == 1
            assert not app.busy
            assert app.theme == "nord"

    @pytest.mark.asyncio
    async def test_followup_carries_history(self):
        adapter = SimulatedAdapter()
        adapter.configure_scenarios([{"response": "one\n"}, {"response": "two\n"}])
        app = ChatApp(adapter)
        async with app.run_test() as pilot:
            app.send("first")
            await app.wait_for_reply()
            app.send("second")
            await app.wait_for_reply()
            await pilot.pause()
            assert adapter.prompts == ["first", "User: first\nAssistant: one\n\nUser: second"]
            assert [m for m, _ in app.history] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_submit_from_input(self):
        adapter = SimulatedAdapter()
        app = ChatApp(adapter)
        async with app.run_test() as pilot:
            app.query_one(Input).value = "typed message"
            await pilot.press("enter")
            await pilot.pause()
            await app.wait_for_reply()
            assert adapter.prompts == ["typed message"]
            assert app.query_one(Input).value == ""

    @pytest.mark.asyncio
    async def test_cancel_reply(self):
        adapter = SimulatedAdapter(response_delay=0.05)
        adapter.set_default_response("word " * 200 + "\n")
        app = ChatApp(adapter)
        async with app.run_test() as pilot:
            app.send("go")
            await asyncio.sleep(0.1)
            assert app.busy
            app.action_cancel_reply()
            await asyncio.wait_for(app.wait_for_reply(), timeout=2)
            await pilot.pause()
            assert app.history == []
            errors = app.query(".error")
            assert len(errors) == 1
            assert isinstance(errors.first(), Static)

    @pytest.mark.asyncio
    async def test_stream_error_is_shown(self):
        adapter = SimulatedAdapter(fail_after=2)
        adapter.set_default_response("x" * 50 + "\n")
        app = ChatApp(adapter)
        async with app.run_test() as pilot:
            app.send("go")
            await app.wait_for_reply()
            await pilot.pause()
            assert app.history == []
            assert len(app.query(".error")) == 1
