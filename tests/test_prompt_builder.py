from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest

from prompt_builder import (
    build_chat_prompt,
    build_chat_system_prompt,
    build_narration_prompt,
    build_relevance_prompt,
    build_system_prompt_with_warnings,
)
from tutor.slides import BulletPoint, Slide


@dataclass
class DummyPromptConfig:
    presenter_path: Path


def test_build_system_prompt_puts_presenter_before_rules(tmp_path: Path) -> None:
    presenter_path = tmp_path / "presenter.md"
    presenter_path.write_text("# PRESENTER\n- Role: Unit\n", encoding="utf-8")

    prompt, warnings = build_system_prompt_with_warnings(
        DummyPromptConfig(presenter_path=presenter_path)
    )

    assert warnings == []
    assert prompt.index("- Role: Unit") < prompt.index("# NARRATION_RULES")


def test_build_system_prompt_with_warnings_reports_fallback(tmp_path: Path) -> None:
    cfg = DummyPromptConfig(presenter_path=tmp_path / "presenter_missing.md")

    prompt, warnings = build_system_prompt_with_warnings(cfg)

    assert len(warnings) == 1
    assert "PRESENTER fallback" in warnings[0]
    assert "# PRESENTER" in prompt
    assert "# NARRATION_RULES" in prompt


@pytest.mark.parametrize(("mode", "words"), [("rapid", "40 words"), ("normal", "75 words")])
def test_narration_prompt_follows_pace(mode: str, words: str) -> None:
    slide = Slide(
        title="Photosynthesis",
        content=(BulletPoint("Light reactions"), BulletPoint("Calvin cycle")),
    )

    prompt = build_narration_prompt(slide, mode)

    assert words in prompt
    assert "SLIDE TITLE: Photosynthesis" in prompt
    assert "- Light reactions\n- Calvin cycle" in prompt


def test_narration_prompt_handles_slide_without_bullets() -> None:
    prompt = build_narration_prompt(Slide(title="Summary"), "rapid")

    assert "(no bullet points)" in prompt


def test_narration_prompt_rejects_unknown_pace() -> None:
    with pytest.raises(ValueError, match="Unsupported pacing mode"):
        build_narration_prompt(Slide(title="Summary"), "leisurely")


def test_chat_prompt_embeds_document_and_question() -> None:
    prompt = build_chat_prompt("Cells divide by mitosis.", "  How do cells divide?  ")

    assert "Cells divide by mitosis." in prompt
    assert prompt.endswith("USER QUESTION:\nHow do cells divide?")
    assert "(no document text" in build_chat_prompt("", "Why?")
    assert build_chat_system_prompt().startswith("# CHAT_RULES")


def test_build_system_prompt_keeps_utf8_persona(tmp_path: Path) -> None:
    presenter_path = tmp_path / "presenter.md"
    presenter_path.write_text("# PRESENTER\n- Name: Café Tutor\n", encoding="utf-8")

    prompt, _ = build_system_prompt_with_warnings(DummyPromptConfig(presenter_path=presenter_path))

    assert "Café Tutor" in prompt


def test_empty_presenter_file_falls_back(tmp_path: Path) -> None:
    presenter_path = tmp_path / "presenter.md"
    presenter_path.write_text(" \n\t\n", encoding="utf-8")

    prompt, warnings = build_system_prompt_with_warnings(DummyPromptConfig(presenter_path=presenter_path))

    assert "Expert presenter" in prompt
    assert len(warnings) == 1


def test_relevance_prompt_lists_slides_by_index() -> None:
    slides = [Slide(title="Cells"), Slide(title="Mitosis")]

    prompt = build_relevance_prompt("How do cells divide?", "By mitosis.", slides)

    assert "Index 0: Cells\nIndex 1: Mitosis" in prompt
    assert "USER QUERY:\n---\nHow do cells divide?" in prompt
    assert "AI RESPONSE:\n---\nBy mitosis." in prompt
    assert '"slideIndex"' in prompt
