from __future__ import annotations

import asyncio
from contextlib import aclosing
from enum import Enum
from typing import AsyncGenerator, Iterator, Protocol

from api.gemini import GeminiClient
from prompt_builder import build_narration_prompt
from tutor.errors import GenerationError
from tutor.slides import Slide


class TutoringMode(str, Enum):
    RAPID = "rapid"
    NORMAL = "normal"


class NarrationSource(Protocol):
    def stream(self, slide: Slide, mode: TutoringMode) -> AsyncGenerator[str, None]:
        """Yield text fragments that concatenate into the slide's narration."""


_END = object()


def _next_item(items: Iterator[str]) -> object:
    return next(items, _END)


async def iter_in_thread(items: Iterator[str]) -> AsyncGenerator[str, None]:
    """Drain a blocking iterator without stalling the event loop."""
    try:
        while True:
            item = await asyncio.to_thread(_next_item, items)
            if item is _END:
                return
            yield item
    finally:
        close = getattr(items, "close", None)
        if close is not None:
            close()


class GeminiNarrationSource:
    def __init__(self, client: GeminiClient, system_prompt: str) -> None:
        self._client = client
        self._system_prompt = system_prompt

    async def stream(self, slide: Slide, mode: TutoringMode) -> AsyncGenerator[str, None]:
        prompt = build_narration_prompt(slide, TutoringMode(mode).value)
        fragments = self._client.generate_stream(prompt, self._system_prompt)
        try:
            async with aclosing(iter_in_thread(fragments)) as pulled:
                async for fragment in pulled:
                    yield fragment
        except Exception as exc:
            raise GenerationError(
                f"Failed to get a streaming explanation from the AI: {exc}"
            ) from exc
