from __future__ import annotations

import requests

from api.errors import ApiError, error_detail

DEFAULT_VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.7}


class ElevenLabsClient:
    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str = "eleven_multilingual_v2",
        output_format: str = "mp3_44100_128",
        voice_settings: dict[str, float] | None = None,
    ) -> None:
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.output_format = output_format
        self.voice_settings = dict(voice_settings or DEFAULT_VOICE_SETTINGS)
        self.base_url = "https://api.elevenlabs.io/v1"
        self._session = requests.Session()

    def tts(self, text: str, voice_id: str | None = None) -> bytes:
        """Return the spoken *text* as an encoded clip (mp3 by default)."""
        resp = self._session.post(
            f"{self.base_url}/text-to-speech/{voice_id or self.voice_id}",
            params={"output_format": self.output_format},
            headers={"xi-api-key": self.api_key, "accept": "audio/mpeg"},
            json={
                "text": text,
                "model_id": self.model_id,
                "voice_settings": self.voice_settings,
            },
            timeout=60,
        )
        if not resp.ok:
            raise ApiError(
                f"ElevenLabs text-to-speech failed ({resp.status_code}): "
                f"{error_detail(resp)}",
                status_code=resp.status_code,
            )
        return resp.content
