from __future__ import annotations

import pytest

from api.elevenlabs import ElevenLabsClient
from api.errors import ApiError
from api.openai_tts import OpenAITTSClient
from audio.providers.openai import OpenAITTSProvider


class _Response:
    def __init__(self, status_code: int, content: bytes = b"", body: object = None) -> None:
        self.status_code = status_code
        self.ok = status_code < 400
        self.content = content
        self.text = "" if body is None else str(body)
        self._body = body

    def json(self) -> object:
        if self._body is None:
            raise ValueError("no json")
        return self._body


class _Session:
    def __init__(self, response: _Response) -> None:
        self.response = response
        self.calls: list[tuple[str, dict]] = []

    def post(self, url: str, **kwargs) -> _Response:
        self.calls.append((url, kwargs))
        return self.response


def test_openai_tts_posts_speech_request() -> None:
    client = OpenAITTSClient("sk-test", voice="alloy")
    session = _Session(_Response(200, content=b"ID3mp3"))
    client._session = session

    audio = OpenAITTSProvider(client).generate("Hello class")

    assert audio == b"ID3mp3"
    url, kwargs = session.calls[0]
    assert url.endswith("/audio/speech")
    assert kwargs["json"]["voice"] == "alloy"
    assert kwargs["json"]["input"] == "Hello class"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


def test_openai_tts_error_carries_status_and_code() -> None:
    client = OpenAITTSClient("sk-test")
    client._session = _Session(
        _Response(
            429,
            body={"error": {"message": "You exceeded your current quota.", "type": "insufficient_quota"}},
        )
    )

    with pytest.raises(ApiError) as excinfo:
        client.tts("Hello")

    assert excinfo.value.status_code == 429
    assert "(insufficient_quota)" in str(excinfo.value)


def test_provider_skips_empty_text() -> None:
    client = OpenAITTSClient("sk-test")
    session = _Session(_Response(200, content=b"unused"))
    client._session = session

    assert OpenAITTSProvider(client).generate("") == b""
    assert session.calls == []


def test_elevenlabs_error_uses_detail_message() -> None:
    client = ElevenLabsClient("xi", "voice-1")
    client._session = _Session(
        _Response(401, body={"detail": {"status": "invalid_api_key", "message": "Invalid API key"}})
    )

    with pytest.raises(ApiError, match=r"ElevenLabs text-to-speech failed \(401\): Invalid API key"):
        client.tts("Hello")
