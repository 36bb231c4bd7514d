from __future__ import annotations

import asyncio

import pytest

from api.errors import ApiError
from tutor.errors import GenerationError
from tutor.narration import GeminiNarrationSource, TutoringMode, iter_in_thread
from tutor.slides import BulletPoint, Slide


class FakeGemini:
    def __init__(self, fragments: list[str], error: Exception | None = None) -> None:
        self.fragments = fragments
        self.error = error
        self.prompts: list[tuple[str, str]] = []
        self.closed = False

    def generate_stream(self, user_text: str, system_prompt: str):
        self.prompts.append((user_text, system_prompt))
        try:
            yield from self.fragments
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


SLIDE = Slide(title="Gravity", content=(BulletPoint("Mass attracts mass"),))


async def _collect(source: GeminiNarrationSource, mode: TutoringMode) -> list[str]:
    return [fragment async for fragment in source.stream(SLIDE, mode)]


def test_stream_yields_fragments_with_paced_prompt() -> None:
    client = FakeGemini(["Gravity ", "pulls."])
    source = GeminiNarrationSource(client, "persona")

    out = asyncio.run(_collect(source, TutoringMode.RAPID))

    assert out == ["Gravity ", "pulls."]
    prompt, system_prompt = client.prompts[0]
    assert "40 words" in prompt
    assert "- Mass attracts mass" in prompt
    assert system_prompt == "persona"


def test_stream_failures_become_generation_errors() -> None:
    client = FakeGemini(["Partial "], error=ApiError("Gemini failed (500): boom", 500))
    source = GeminiNarrationSource(client, "persona")

    with pytest.raises(GenerationError, match="streaming explanation from the AI: Gemini failed"):
        asyncio.run(_collect(source, TutoringMode.NORMAL))


def test_iter_in_thread_closes_abandoned_iterator() -> None:
    client = FakeGemini(["one", "two", "three"])

    async def scenario() -> list[str]:
        pulled = iter_in_thread(client.generate_stream("q", ""))
        first = [await pulled.__anext__()]
        await pulled.aclose()
        return first

    assert asyncio.run(scenario()) == ["one"]
    assert client.closed
