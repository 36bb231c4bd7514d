from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Protocol

import numpy as np

from audio.playback import _debug, decode_audio_bytes
from audio.tts_provider import TTSProvider
from tutor.errors import PlaybackError, SynthesisError, SynthesisErrorKind


@dataclass(frozen=True)
class AudioBuffer:
    samples: np.ndarray
    sample_rate: int

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(self.samples.shape[0]) / float(self.sample_rate)


class AudioOutput(Protocol):
    def open(self) -> None: ...

    def start(
        self,
        samples: np.ndarray,
        sample_rate: int,
        on_finished: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...


def _resolve(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)


class AudioEngine:
    """Synthesizes narration and plays it, one clip at a time.

    ``activate()`` has to complete before the first ``play()``; the output
    device is only opened from an explicit user action.
    """

    def __init__(self, tts: TTSProvider, output: AudioOutput) -> None:
        self._tts = tts
        self._output = output
        self._activated = False
        self._playing: asyncio.Future | None = None

    @property
    def activated(self) -> bool:
        return self._activated

    @property
    def is_playing(self) -> bool:
        return self._playing is not None and not self._playing.done()

    async def activate(self) -> None:
        if self._activated:
            return
        try:
            await asyncio.to_thread(self._output.open)
        except Exception as exc:
            raise PlaybackError(f"Audio output is unavailable: {exc}") from exc
        self._activated = True

    async def synthesize(self, text: str) -> AudioBuffer | None:
        text = text.strip()
        if not text:
            return None
        try:
            audio_bytes = await asyncio.to_thread(self._tts.generate, text)
        except Exception as exc:
            _debug(f"synthesis failed provider={getattr(self._tts, 'name', '?')}: {exc}")
            raise SynthesisError.from_exception(exc) from exc
        try:
            samples, sample_rate = decode_audio_bytes(audio_bytes)
        except Exception as exc:
            raise SynthesisError(
                f"The audio service returned audio that could not be decoded: {exc}",
                SynthesisErrorKind.UNKNOWN,
            ) from exc
        return AudioBuffer(samples=samples, sample_rate=sample_rate)

    async def play(self, buffer: AudioBuffer) -> None:
        if not self._activated:
            raise PlaybackError("Audio engine must be activated before playback.")
        self.stop()
        loop = asyncio.get_running_loop()
        done = loop.create_future()
        self._playing = done

        def on_finished() -> None:
            # Called from the audio thread.
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, done)

        try:
            self._output.start(buffer.samples, buffer.sample_rate, on_finished)
        except Exception as exc:
            self._playing = None
            raise PlaybackError(f"Audio playback failed: {exc}") from exc
        try:
            await done
        finally:
            if self._playing is done:
                self._playing = None

    async def speak(self, text: str) -> bool:
        buffer = await self.synthesize(text)
        if buffer is None:
            return False
        await self.play(buffer)
        return True

    def stop(self) -> None:
        self._output.stop()
        playing = self._playing
        self._playing = None
        if playing is not None:
            _resolve(playing)
