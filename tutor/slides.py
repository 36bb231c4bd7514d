from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

MAX_BULLETS_PER_SLIDE = 4


@dataclass(frozen=True)
class BulletPoint:
    text: str
    icon: str = ""


@dataclass(frozen=True)
class Slide:
    title: str
    content: tuple[BulletPoint, ...] = ()


@dataclass
class Deck:
    name: str
    slides: list[Slide] = field(default_factory=list)
    document_text: str = ""


def _parse_bullet(item: object) -> BulletPoint | None:
    if isinstance(item, str):
        text = item.strip()
        return BulletPoint(text=text) if text else None
    if isinstance(item, dict):
        text = str(item.get("text", "")).strip()
        if not text:
            return None
        return BulletPoint(text=text, icon=str(item.get("icon", "")).strip())
    return None


def parse_slide(item: object, index: int = 0) -> Slide:
    if not isinstance(item, dict):
        raise ValueError(f"slide {index} must be an object")
    title = str(item.get("title", "")).strip()
    if not title:
        raise ValueError(f"slide {index} is missing a title")
    raw_content = item.get("content", [])
    if not isinstance(raw_content, list):
        raise ValueError(f"slide {index} content must be a list")
    bullets: list[BulletPoint] = []
    for raw in raw_content:
        bullet = _parse_bullet(raw)
        if bullet is not None:
            bullets.append(bullet)
    return Slide(title=title, content=tuple(bullets[:MAX_BULLETS_PER_SLIDE]))


def load_deck(path: str | Path) -> Deck:
    deck_path = Path(path).expanduser()
    data = json.loads(deck_path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        raw_slides, name, document_text = data, deck_path.stem, ""
    elif isinstance(data, dict):
        raw_slides = data.get("slides", [])
        name = str(data.get("name", "")).strip() or deck_path.stem
        document_text = str(data.get("document_text", ""))
    else:
        raise ValueError(f"{deck_path} must contain a list of slides or a deck object")
    if not isinstance(raw_slides, list):
        raise ValueError(f"{deck_path}: 'slides' must be a list")
    slides = [parse_slide(item, idx) for idx, item in enumerate(raw_slides)]
    return Deck(name=name, slides=slides, document_text=document_text)
