from __future__ import annotations

from api.openai_tts import OpenAITTSClient


class OpenAITTSProvider:
    name = "openai"

    def __init__(self, client: OpenAITTSClient, voice: str | None = None) -> None:
        self._client = client
        self._voice = voice

    def generate(self, text: str) -> bytes:
        if not text:
            return b""
        return self._client.tts(text, voice=self._voice)
