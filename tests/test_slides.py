from __future__ import annotations

import json
from pathlib import Path

import pytest

from tutor.slides import MAX_BULLETS_PER_SLIDE, BulletPoint, load_deck, parse_slide


def test_load_deck_reads_object_form(tmp_path: Path) -> None:
    path = tmp_path / "biology.json"
    path.write_text(
        json.dumps(
            {
                "name": "Cell Biology",
                "document_text": "Cells are the unit of life.",
                "slides": [
                    {"title": "Cells", "content": [{"text": "Membranes", "icon": "shield"}, "Nucleus"]},
                    {"title": "Mitosis", "content": []},
                ],
            }
        ),
        encoding="utf-8",
    )

    deck = load_deck(path)

    assert deck.name == "Cell Biology"
    assert deck.document_text.startswith("Cells are")
    assert [s.title for s in deck.slides] == ["Cells", "Mitosis"]
    assert deck.slides[0].content == (BulletPoint("Membranes", "shield"), BulletPoint("Nucleus"))


def test_load_deck_accepts_bare_list(tmp_path: Path) -> None:
    path = tmp_path / "intro.json"
    path.write_text(json.dumps([{"title": "Welcome"}]), encoding="utf-8")

    deck = load_deck(path)

    assert deck.name == "intro"
    assert deck.document_text == ""
    assert deck.slides[0].content == ()


def test_parse_slide_caps_bullets_and_skips_blank_ones() -> None:
    raw = {"title": "Many", "content": ["", "a", "b", {"text": " "}, "c", "d", "e"]}

    slide = parse_slide(raw)

    assert len(slide.content) == MAX_BULLETS_PER_SLIDE
    assert [b.text for b in slide.content] == ["a", "b", "c", "d"]


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"content": []}, "missing a title"),
        ({"title": "X", "content": "text"}, "content must be a list"),
        ("just a string", "must be an object"),
    ],
)
def test_parse_slide_rejects_malformed_input(raw: object, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_slide(raw, 4)


def test_load_deck_rejects_unexpected_json(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text('"nope"', encoding="utf-8")

    with pytest.raises(ValueError, match="list of slides"):
        load_deck(path)
