from __future__ import annotations

import requests

from api.errors import ApiError, error_detail


class OpenAITTSClient:
    def __init__(
        self,
        api_key: str,
        model: str = "tts-1",
        voice: str = "nova",
        response_format: str = "mp3",
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.voice = voice
        self.response_format = response_format
        self.base_url = "https://api.openai.com/v1"
        self._session = requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def tts(self, text: str, voice: str | None = None) -> bytes:
        payload = {
            "model": self.model,
            "input": text,
            "voice": voice or self.voice,
            "response_format": self.response_format,
        }
        resp = self._session.post(
            f"{self.base_url}/audio/speech",
            headers=self._headers(),
            json=payload,
            timeout=60,
        )
        if not resp.ok:
            raise ApiError(
                f"OpenAI speech failed ({resp.status_code}): {error_detail(resp)}",
                status_code=resp.status_code,
            )
        return resp.content
