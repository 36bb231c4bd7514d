from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence

from tutor.slides import Slide

DEFAULT_PRESENTER_MD = """# PRESENTER

- Role: Expert presenter walking a learner through a slide deck
- Vibe: Clear, confident, concise
- Speak as if giving a live presentation.
"""


NARRATION_RULES_MD = """# NARRATION_RULES

- Do not introduce yourself.
- Do not use pleasantries like "In this slide...".
- Give the direct explanation of the slide content, ready to be read aloud.
- Plain prose only: no markdown, lists, or headings.
"""


CHAT_RULES_MD = """# CHAT_RULES

- Answer the user's question based only on the provided document text.
- If the answer is not in the text, say so.
- Be concise and helpful; the answer will be read aloud.
"""

PACING_TARGETS = {
    "rapid": "about 40 words, which is roughly 15 seconds of speech",
    "normal": "about 75 words, which is roughly 30 seconds of speech",
}


class PromptConfig(Protocol):
    presenter_path: Path


def _read_markdown_if_nonempty(path: Path) -> str | None:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return None
    if not text.strip():
        return None
    return text


def build_system_prompt_with_warnings(cfg: PromptConfig) -> tuple[str, list[str]]:
    warnings: list[str] = []

    loaded_presenter = _read_markdown_if_nonempty(cfg.presenter_path)
    presenter = loaded_presenter if loaded_presenter is not None else DEFAULT_PRESENTER_MD
    if loaded_presenter is None:
        warnings.append(
            "Using built-in PRESENTER fallback because file is missing/empty: "
            f"{cfg.presenter_path}"
        )

    prompt = "\n\n".join([presenter.strip(), NARRATION_RULES_MD.strip()]).strip()
    return prompt, warnings


def build_narration_prompt(slide: Slide, mode: str) -> str:
    target = PACING_TARGETS.get(str(mode).lower())
    if target is None:
        raise ValueError(f"Unsupported pacing mode '{mode}'")
    bullets = "\n".join(f"- {point.text}" for point in slide.content) or "- (no bullet points)"
    return (
        "Explain the following slide content clearly and concisely. "
        f"Keep your explanation to {target}.\n\n"
        f"SLIDE TITLE: {slide.title}\n\n"
        f"SLIDE BULLET POINTS:\n{bullets}\n\n"
        "Your spoken explanation:"
    )


def build_chat_system_prompt() -> str:
    return CHAT_RULES_MD.strip()


def build_chat_prompt(document_text: str, question: str) -> str:
    return (
        "DOCUMENT TEXT:\n---\n"
        f"{document_text.strip() or '(no document text available)'}\n---\n\n"
        f"USER QUESTION:\n{question.strip()}"
    )


def build_relevance_prompt(question: str, answer: str, slides: Sequence[Slide]) -> str:
    listing = "\n".join(f"Index {idx}: {slide.title}" for idx, slide in enumerate(slides))
    return (
        "Based on the following user query and AI response, identify which of "
        "the provided slides is the most relevant. Respond only with the index "
        "of that slide.\n\n"
        f"USER QUERY:\n---\n{question.strip()}\n---\n\n"
        f"AI RESPONSE:\n---\n{answer.strip()}\n---\n\n"
        f"AVAILABLE SLIDES:\n---\n{listing}\n---\n\n"
        'Return a JSON object with the single most relevant slide index, '
        'for example: {"slideIndex": 2}'
    )
