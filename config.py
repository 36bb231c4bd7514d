import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

VALID_TTS_PROVIDERS = ("openai", "elevenlabs", "piper")
VALID_TUTOR_MODES = ("rapid", "normal")


@dataclass
class AppConfig:
    gemini_api_key: str
    gemini_model: str
    tts_provider: str
    openai_api_key: str
    openai_tts_model: str
    openai_tts_voice: str
    elevenlabs_api_key: str
    voice_id: str
    piper_model: str
    piper_speaker: int
    presenter_path: Path
    tutor_default_mode: str
    tutor_pacing_delay_ms: int
    tutor_renotify_on_resume: bool
    tts_min_lead_silence_seconds: float
    audio_output_device: int | str | None


def _read_bool(name: str, default: str) -> bool:
    raw = os.getenv(name, default).strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be one of: 1, 0, true, false, yes, no, on, off")


def _read_output_device(raw: str) -> int | str | None:
    if not raw:
        return None
    if raw.isdigit():
        return int(raw)
    return raw


def load_config() -> AppConfig:
    load_dotenv()
    gemini_api_key = os.getenv("GEMINI_API_KEY", "").strip()
    gemini_model = os.getenv("GEMINI_MODEL", "gemini-flash-lite-latest").strip()
    tts_provider = os.getenv("TTS_PROVIDER", "openai").strip().lower()
    if tts_provider not in VALID_TTS_PROVIDERS:
        raise ValueError(
            f"TTS_PROVIDER must be one of: {', '.join(VALID_TTS_PROVIDERS)} "
            f"(got '{tts_provider}')"
        )
    openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
    openai_tts_model = os.getenv("OPENAI_TTS_MODEL", "tts-1").strip()
    openai_tts_voice = os.getenv("OPENAI_TTS_VOICE", "nova").strip()
    elevenlabs_api_key = os.getenv("ELEVENLABS_API_KEY", "").strip()
    voice_id = os.getenv("VOICE_ID", "").strip()
    piper_model = os.getenv("PIPER_MODEL", "en_US-lessac-medium").strip()
    piper_speaker = int(os.getenv("PIPER_SPEAKER", "0").strip())
    presenter_path = os.getenv("PRESENTER_PATH", "").strip() or str(
        BASE_DIR / "presenter.md"
    )

    tutor_default_mode = os.getenv("TUTOR_DEFAULT_MODE", "normal").strip().lower()
    if tutor_default_mode not in VALID_TUTOR_MODES:
        raise ValueError(
            f"TUTOR_DEFAULT_MODE must be one of: {', '.join(VALID_TUTOR_MODES)} "
            f"(got '{tutor_default_mode}')"
        )
    tutor_pacing_delay_ms = int(os.getenv("TUTOR_PACING_DELAY_MS", "250").strip())
    if tutor_pacing_delay_ms < 0:
        raise ValueError("TUTOR_PACING_DELAY_MS must be >= 0")
    tutor_renotify_on_resume = _read_bool("TUTOR_RENOTIFY_ON_RESUME", "0")
    tts_min_lead_silence_seconds = float(
        os.getenv("TTS_MIN_LEAD_SILENCE_SECONDS", "0.0").strip()
    )
    if tts_min_lead_silence_seconds < 0:
        raise ValueError("TTS_MIN_LEAD_SILENCE_SECONDS must be >= 0")
    audio_output_device = _read_output_device(
        os.getenv("AUDIO_OUTPUT_DEVICE", "").strip()
    )

    return AppConfig(
        gemini_api_key=gemini_api_key,
        gemini_model=gemini_model,
        tts_provider=tts_provider,
        openai_api_key=openai_api_key,
        openai_tts_model=openai_tts_model,
        openai_tts_voice=openai_tts_voice,
        elevenlabs_api_key=elevenlabs_api_key,
        voice_id=voice_id,
        piper_model=piper_model,
        piper_speaker=piper_speaker,
        presenter_path=Path(presenter_path).expanduser().resolve(),
        tutor_default_mode=tutor_default_mode,
        tutor_pacing_delay_ms=tutor_pacing_delay_ms,
        tutor_renotify_on_resume=tutor_renotify_on_resume,
        tts_min_lead_silence_seconds=tts_min_lead_silence_seconds,
        audio_output_device=audio_output_device,
    )
