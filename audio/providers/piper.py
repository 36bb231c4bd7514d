from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import soundfile as sf
from piper import PiperVoice, SynthesisConfig

PIPER_DATA_DIR = Path.home() / ".local" / "share" / "piper"


class PiperTTSProvider:
    name = "piper"

    def __init__(self, model: str = "en_US-lessac-medium", speaker: int = 0) -> None:
        self._voice = PiperVoice.load(str(resolve_piper_model(model)))
        self._syn_config = SynthesisConfig(speaker_id=speaker if speaker else None)

    def generate(self, text: str) -> bytes:
        """Synthesize *text* locally and return it as a WAV file."""
        if not text:
            return b""
        chunks = [
            np.frombuffer(chunk.audio_int16_bytes, dtype=np.int16)
            for chunk in self._voice.synthesize(text, self._syn_config)
        ]
        samples = np.concatenate(chunks) if chunks else np.zeros((0,), dtype=np.int16)
        buf = io.BytesIO()
        sf.write(
            buf,
            samples,
            self._voice.config.sample_rate,
            subtype="PCM_16",
            format="WAV",
        )
        return buf.getvalue()


def resolve_piper_model(name: str, data_dir: Path = PIPER_DATA_DIR) -> Path:
    explicit = Path(name).expanduser()
    if explicit.suffix == ".onnx" and explicit.exists():
        return explicit

    for candidate in (data_dir / f"{name}.onnx", data_dir / name / f"{name}.onnx"):
        if candidate.exists():
            return candidate

    from piper.download_voices import download_voice

    data_dir.mkdir(parents=True, exist_ok=True)
    try:
        download_voice(name, data_dir)
    except Exception as exc:
        raise FileNotFoundError(
            f"Piper model '{name}' not found and download failed: {exc}"
        ) from exc
    model_path = data_dir / f"{name}.onnx"
    if not model_path.exists():
        raise FileNotFoundError(f"Piper model '{name}' missing after download: {model_path}")
    return model_path
