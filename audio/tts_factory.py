from __future__ import annotations

from typing import TYPE_CHECKING

from config import VALID_TTS_PROVIDERS

if TYPE_CHECKING:
    from audio.tts_provider import TTSProvider
    from config import AppConfig


def build_tts_provider(cfg: AppConfig) -> TTSProvider:
    provider = cfg.tts_provider.strip().lower()

    if provider == "openai":
        from api.openai_tts import OpenAITTSClient
        from audio.providers.openai import OpenAITTSProvider

        if not cfg.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when TTS_PROVIDER=openai")
        client = OpenAITTSClient(
            cfg.openai_api_key,
            model=cfg.openai_tts_model,
            voice=cfg.openai_tts_voice,
        )
        return OpenAITTSProvider(client=client)

    if provider == "elevenlabs":
        from api.elevenlabs import ElevenLabsClient
        from audio.providers.elevenlabs import ElevenLabsTTSProvider

        if not cfg.elevenlabs_api_key:
            raise ValueError("ELEVENLABS_API_KEY is required when TTS_PROVIDER=elevenlabs")
        if not cfg.voice_id:
            raise ValueError("VOICE_ID is required when TTS_PROVIDER=elevenlabs")
        client = ElevenLabsClient(cfg.elevenlabs_api_key, cfg.voice_id)
        return ElevenLabsTTSProvider(client=client, voice_id=cfg.voice_id)

    if provider == "piper":
        from audio.providers.piper import PiperTTSProvider

        return PiperTTSProvider(model=cfg.piper_model, speaker=cfg.piper_speaker)

    raise ValueError(
        f"Unsupported TTS provider '{cfg.tts_provider}'. "
        f"Expected one of: {', '.join(VALID_TTS_PROVIDERS)}"
    )
