from __future__ import annotations

from typing import Protocol, Sequence

from prompt_builder import build_relevance_prompt
from tutor.slides import Slide

SLIDE_INDEX_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "slideIndex": {
            "type": "INTEGER",
            "description": "The index of the most relevant slide from the list.",
        }
    },
    "required": ["slideIndex"],
}


class StructuredModel(Protocol):
    def generate_json(self, user_text: str, system_prompt: str, schema: dict) -> object: ...


def find_most_relevant_slide(
    client: StructuredModel, question: str, answer: str, slides: Sequence[Slide]
) -> int:
    """Return the index of the slide a chat exchange is about, or -1.

    Blocking; provider errors propagate to the caller.
    """
    if not slides:
        return -1
    data = client.generate_json(
        build_relevance_prompt(question, answer, slides), "", SLIDE_INDEX_SCHEMA
    )
    index = data.get("slideIndex") if isinstance(data, dict) else None
    if isinstance(index, bool) or not isinstance(index, int):
        return -1
    if 0 <= index < len(slides):
        return index
    return -1
