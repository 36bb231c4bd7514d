from __future__ import annotations

import io
import os
import threading
from typing import Callable

import numpy as np
import sounddevice as sd
import soundfile as sf

_DEBUG_AUDIO = os.getenv("SLIDETUTOR_DEBUG", "0").strip() == "1"


def _debug(msg: str) -> None:
    if _DEBUG_AUDIO:
        print(f"[audio] {msg}", flush=True)


def decode_audio_bytes(audio_bytes: bytes) -> tuple[np.ndarray, int]:
    """Decode an encoded clip into float32 frames shaped (frames, channels)."""
    if not audio_bytes:
        raise ValueError("audio payload is empty")
    data, sample_rate = sf.read(io.BytesIO(audio_bytes), dtype="float32", always_2d=True)
    if sample_rate <= 0 or data.shape[0] == 0:
        raise ValueError("decoded audio has no frames")
    return data, int(sample_rate)


def _leading_silence_seconds(
    data: np.ndarray, sample_rate: int, threshold: float = 0.006
) -> float:
    if sample_rate <= 0 or data.size == 0:
        return 0.0
    if data.ndim == 1:
        levels = np.abs(data)
    else:
        levels = np.max(np.abs(data), axis=1)
    non_silent = np.flatnonzero(levels > threshold)
    if non_silent.size == 0:
        return float(levels.shape[0]) / float(sample_rate)
    return float(non_silent[0]) / float(sample_rate)


def pad_lead_silence(
    data: np.ndarray, sample_rate: int, min_lead_silence_seconds: float
) -> np.ndarray:
    if min_lead_silence_seconds <= 0 or sample_rate <= 0:
        return data
    lead = _leading_silence_seconds(data, sample_rate)
    missing = min_lead_silence_seconds - lead
    pad_frames = int(round(missing * sample_rate))
    if pad_frames <= 0:
        return data
    if data.ndim == 1:
        pad = np.zeros((pad_frames,), dtype=data.dtype)
    else:
        pad = np.zeros((pad_frames, data.shape[1]), dtype=data.dtype)
    _debug(f"lead_silence padded lead={lead:.3f}s added={missing:.3f}s")
    return np.concatenate((pad, data), axis=0)


class _ClipCursor:
    def __init__(self, samples: np.ndarray) -> None:
        self._samples = samples
        self._pos = 0

    def fill(self, outdata: np.ndarray, frames: int) -> bool:
        chunk = self._samples[self._pos : self._pos + frames]
        count = chunk.shape[0]
        outdata[:count] = chunk
        if count < frames:
            outdata[count:] = 0
        self._pos += count
        return self._pos >= self._samples.shape[0]


class SoundDeviceOutput:
    """Plays one clip at a time through a callback-driven output stream."""

    def __init__(
        self,
        device: int | str | None = None,
        min_lead_silence_seconds: float = 0.0,
    ) -> None:
        if min_lead_silence_seconds < 0:
            raise ValueError("min_lead_silence_seconds must be >= 0")
        self._device = device
        self._min_lead_silence_seconds = min_lead_silence_seconds
        self._stream: sd.OutputStream | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        info = sd.query_devices(self._device, kind="output")
        _debug(f"output device ready name={info.get('name', '?')}")

    def start(
        self,
        samples: np.ndarray,
        sample_rate: int,
        on_finished: Callable[[], None],
    ) -> None:
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        samples = pad_lead_silence(
            samples, sample_rate, self._min_lead_silence_seconds
        )
        cursor = _ClipCursor(samples)

        def callback(outdata, frames, _time, status) -> None:
            if status:
                _debug(f"stream status {status}")
            if cursor.fill(outdata, frames):
                raise sd.CallbackStop

        with self._lock:
            self._close_locked()
            stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=samples.shape[1],
                dtype="float32",
                device=self._device,
                callback=callback,
                finished_callback=on_finished,
            )
            self._stream = stream
            stream.start()
        _debug(
            f"play frames={samples.shape[0]} rate={sample_rate} ch={samples.shape[1]}"
        )

    def stop(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        stream = self._stream
        if stream is None:
            return
        self._stream = None
        try:
            stream.abort()
        finally:
            stream.close()
