"""Offline provider with scripted replies, streamed in irregular chunks."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from typing import Any, AsyncIterator

from gptcli.core.stream import ByteSource

from .base import StreamAdapter, TextChunkSource

logger = logging.getLogger(__name__)

_RESP_MARKDOWN_DEMO = """\
Here's a quick tour of the formatting the terminal renderer handles.

## Lists

- Alpha
- Bravo
- Charlie

## Code Block

```python
def fibonacci(n: int) -> list[int]:
    if n <= 0:
        return []
    fib = [0, 1]
    for _ in range(2, n):
        fib.append(fib[-1] + fib[-2])
    return fib[:n]
```

> **Tip**: fenced blocks arrive in one piece, so highlighting never breaks mid-block.
"""

_RESP_SHELL = """\
{"command": "du -sh * | sort -h", "safety_level": "safe", \
"explanation": "Shows the size of each entry in the current directory, smallest first.", \
"reasoning": "Only reads file sizes; nothing is modified."}
"""

_RESP_CALCULATE = """\
Let me calculate that for you.

~~~
2 + 2 = 4
~~~

The answer is **4**.
"""

_DEFAULT_SCENARIOS: list[dict[str, Any]] = [
    {"pattern": r"shell command|safety_level", "response": _RESP_SHELL},
    {"pattern": r"calculat|math|add|sum", "response": _RESP_CALCULATE},
    {"pattern": r"markdown|format|demo", "response": _RESP_MARKDOWN_DEMO},
]

_DEFAULT_RESPONSE = (
    "I'm a simulated provider, so no request left this machine.\n\n"
    "Ask for a **markdown demo** to see fenced code streaming, or pass "
    "`--provider openai` to talk to a real model.\n"
)


class SimulatedAdapter(StreamAdapter):
    """Test double for a real provider; no network access.

    Scenarios are matched against the prompt. Each scenario is a dict with
    an optional 'pattern' (regex) and a required 'response'. Scenarios
    without a pattern are used sequentially. Replies are cut into chunks of
    random size so that fragment boundaries never line up with the text.
    """

    name = "simulated"

    def __init__(
        self,
        response_delay: float = 0.0,
        min_chunk: int = 1,
        max_chunk: int = 12,
        seed: int | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.response_delay = response_delay
        self.min_chunk = min_chunk
        self.max_chunk = max_chunk
        self.fail_after = fail_after
        self._random = random.Random(seed)

        self.scenarios: list[dict[str, Any]] = list(_DEFAULT_SCENARIOS)
        self.current_scenario_index = 0
        self.default_response = _DEFAULT_RESPONSE
        self.prompts: list[str] = []

    def configure_scenarios(self, scenarios: list[dict[str, Any]]) -> None:
        self.scenarios = list(scenarios)
        self.current_scenario_index = 0

    def set_default_response(self, response: str) -> None:
        self.default_response = response

    def add_scenario(self, response: str, pattern: str | None = None) -> None:
        scenario: dict[str, Any] = {"response": response}
        if pattern is not None:
            scenario["pattern"] = pattern
        self.scenarios.append(scenario)

    def _find_response(self, prompt: str) -> str:
        for s in self.scenarios:
            pattern = s.get("pattern")
            if pattern and re.search(pattern, prompt, re.IGNORECASE):
                return s["response"]
        sequential = [s for s in self.scenarios if not s.get("pattern")]
        if self.current_scenario_index < len(sequential):
            s = sequential[self.current_scenario_index]
            self.current_scenario_index += 1
            return s["response"]
        return self.default_response

    def split(self, text: str) -> list[str]:
        """Cut *text* into randomly sized chunks."""
        chunks: list[str] = []
        pos = 0
        while pos < len(text):
            size = self._random.randint(self.min_chunk, self.max_chunk)
            chunks.append(text[pos : pos + size])
            pos += size
        return chunks

    async def _deltas(self, chunks: list[str]) -> AsyncIterator[str]:
        for index, chunk in enumerate(chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise ConnectionError("simulated connection reset")
            await asyncio.sleep(self.response_delay)
            yield chunk

    async def open(self, prompt: str) -> ByteSource:
        self.prompts.append(prompt)
        response = self._find_response(prompt)
        logger.debug("Simulated reply of %d chars", len(response))
        return TextChunkSource(self._deltas(self.split(response)))

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._find_response(prompt)
