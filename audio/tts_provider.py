from __future__ import annotations

from typing import Protocol


class TTSProvider(Protocol):
    name: str

    def generate(self, text: str) -> bytes:
        """Return encoded audio (mp3 or wav) speaking *text*."""
