from __future__ import annotations

import asyncio
import os
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

from audio.engine import AudioBuffer, AudioEngine
from tutor.errors import TutorError
from tutor.narration import NarrationSource, TutoringMode
from tutor.prefetch import PrefetchCache
from tutor.slides import Slide

_DEBUG_TUTOR = os.getenv("SLIDETUTOR_DEBUG", "0").strip() == "1"

DEFAULT_PACING_DELAY_SECONDS = 0.25


def _debug(msg: str) -> None:
    if _DEBUG_TUTOR:
        print(f"[tutor] {msg}", flush=True)


class TutoringState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    GENERATING = "generating"
    PAUSED = "paused"
    ENDED = "ended"


ACTIVE_STATES = (TutoringState.RUNNING, TutoringState.GENERATING)


class HostCallbacks(Protocol):
    def on_slide_changed(self, index: int) -> None: ...

    def on_session_ended(self) -> None: ...

    def on_session_error(self, message: str) -> None: ...


@dataclass
class CancellationToken:
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class TutorSession:
    """Narrates a slide sequence one slide at a time.

    Each slide is one pipeline attempt with its own ``CancellationToken``:
    announce the slide, get its audio (from the prefetch slot or by
    generating and synthesizing it), start prefetching the next slide,
    play, pause briefly, advance. Pause, end, restart and a document switch
    cancel the live token; a cancelled attempt drops whatever it was
    waiting for and leaves the session untouched.

    All methods must be called from the event loop that runs the session.
    """

    def __init__(
        self,
        slides: Sequence[Slide],
        narration: NarrationSource,
        engine: AudioEngine,
        callbacks: HostCallbacks,
        pacing_delay: float = DEFAULT_PACING_DELAY_SECONDS,
        renotify_on_resume: bool = False,
    ) -> None:
        if pacing_delay < 0:
            raise ValueError("pacing_delay must be >= 0")
        self._slides: list[Slide] = list(slides)
        self._narration = narration
        self._engine = engine
        self._callbacks = callbacks
        self._pacing_delay = pacing_delay
        self._renotify_on_resume = renotify_on_resume

        self._state = TutoringState.IDLE
        self._mode = TutoringMode.NORMAL
        self._current_index = 0
        self._last_error: str | None = None
        self._announced_index: int | None = None
        self._prefetch: PrefetchCache[AudioBuffer] = PrefetchCache()
        # Audio of the slide that was interrupted by pause, replayed on resume.
        self._paused_audio: tuple[int, AudioBuffer] | None = None
        self._epoch = 0
        self._token = CancellationToken()
        self._task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> TutoringState:
        return self._state

    @property
    def mode(self) -> TutoringMode:
        return self._mode

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def slide_count(self) -> int:
        return len(self._slides)

    @property
    def prefetched_index(self) -> int | None:
        return self._prefetch.peek_index()

    async def start(self, mode: TutoringMode | str = TutoringMode.NORMAL) -> None:
        mode = TutoringMode(mode)
        self._last_error = None
        self._reset(TutoringState.RUNNING)
        self._mode = mode
        epoch = self._epoch
        _debug(f"start mode={mode.value} slides={len(self._slides)}")
        # Controls stay live while the output device opens; pause keeps the
        # session parked, end/restart/load_slides supersede this start.
        try:
            await self._engine.activate()
        except TutorError as exc:
            if epoch == self._epoch:
                self._fail(str(exc))
            return
        if epoch != self._epoch:
            _debug("start superseded during activation")
            return
        self._ensure_pipeline()

    async def restart(self) -> None:
        await self.start(self._mode)

    def pause(self) -> bool:
        if self._state not in ACTIVE_STATES:
            return False
        self._token.cancel()
        self._engine.stop()
        self._state = TutoringState.PAUSED
        _debug(f"pause index={self._current_index}")
        return True

    def resume(self) -> bool:
        if self._state is not TutoringState.PAUSED:
            return False
        if self._renotify_on_resume:
            self._announced_index = None
        self._state = TutoringState.RUNNING
        _debug(f"resume index={self._current_index}")
        self._ensure_pipeline()
        return True

    def interrupt(self) -> bool:
        """Pause for an outside interaction such as the user starting to chat."""
        return self.pause()

    def end(self) -> None:
        was_active = self._state in (*ACTIVE_STATES, TutoringState.PAUSED)
        self._reset(TutoringState.ENDED if was_active else self._state)
        if was_active:
            _debug("end")
            self._notify("on_session_ended")

    def load_slides(self, slides: Sequence[Slide]) -> None:
        self._reset(TutoringState.IDLE)
        self._slides = list(slides)

    def dismiss_error(self) -> None:
        self._last_error = None

    async def join(self) -> None:
        while self._task is not None:
            await asyncio.shield(self._task)

    async def aclose(self) -> None:
        self._reset(TutoringState.IDLE)
        await self.join()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def _reset(self, state: TutoringState) -> None:
        self._token.cancel()
        self._epoch += 1
        self._engine.stop()
        self._prefetch.clear()
        self._paused_audio = None
        self._current_index = 0
        self._announced_index = None
        self._state = state

    def _ensure_pipeline(self) -> None:
        if self._task is not None or self._state is not TutoringState.RUNNING:
            return
        if not self._engine.activated:
            # start() launches the pipeline once activation completes.
            return
        self._task = asyncio.create_task(self._run_pipeline())

    async def _run_pipeline(self) -> None:
        try:
            while self._state is TutoringState.RUNNING:
                token = CancellationToken()
                self._token = token
                try:
                    await self._play_slide(token)
                except TutorError as exc:
                    self._handle_failure(token, str(exc))
                except Exception as exc:
                    self._handle_failure(
                        token, str(exc) or "An unknown error occurred during tutoring."
                    )
        finally:
            self._task = None

    async def _play_slide(self, token: CancellationToken) -> None:
        index = self._current_index
        epoch = self._epoch
        if index >= len(self._slides):
            self._complete()
            return

        if self._announced_index != index:
            self._announced_index = index
            self._notify("on_slide_changed", index)
        self._state = TutoringState.GENERATING

        buffer = self._take_ready_audio(index)
        if buffer is None:
            buffer = await self._narrate(index, token)
        if token.cancelled:
            self._keep_for_resume(index, buffer, epoch)
            _debug(f"discarding attempt for slide={index} (cancelled)")
            return
        if buffer is None:
            self._fail(f"No narration audio was produced for slide {index + 1}.")
            return

        next_index = index + 1
        if next_index < len(self._slides) and self._prefetch.peek_index() != next_index:
            self._spawn_prefetch(next_index, token)

        self._state = TutoringState.RUNNING
        await self._engine.play(buffer)
        if token.cancelled:
            self._keep_for_resume(index, buffer, epoch)
            return
        if self._pacing_delay > 0:
            await asyncio.sleep(self._pacing_delay)
            if token.cancelled:
                # Clip finished; resume continues with the next slide.
                if epoch == self._epoch:
                    self._advance(next_index)
                return
        self._advance(next_index)

    def _advance(self, next_index: int) -> None:
        if next_index >= len(self._slides):
            self._complete()
        else:
            self._current_index = next_index

    def _take_ready_audio(self, index: int) -> AudioBuffer | None:
        paused, self._paused_audio = self._paused_audio, None
        if paused is not None and paused[0] == index:
            return paused[1]
        buffer = self._prefetch.take(index)
        if buffer is None:
            stale = self._prefetch.peek_index()
            if stale is not None and stale <= index:
                self._prefetch.clear()
        return buffer

    def _keep_for_resume(
        self, index: int, buffer: AudioBuffer | None, epoch: int
    ) -> None:
        if buffer is None or epoch != self._epoch:
            return
        if self._current_index == index:
            self._paused_audio = (index, buffer)

    async def _narrate(self, index: int, token: CancellationToken) -> AudioBuffer | None:
        slide = self._slides[index]
        parts: list[str] = []
        async with aclosing(self._narration.stream(slide, self._mode)) as fragments:
            async for fragment in fragments:
                if token.cancelled:
                    return None
                parts.append(fragment)
        text = "".join(parts).strip()
        if not text or token.cancelled:
            return None
        return await self._engine.synthesize(text)

    def _spawn_prefetch(self, index: int, token: CancellationToken) -> None:
        task = asyncio.create_task(self._prefetch_slide(index, token, self._epoch))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _prefetch_slide(
        self, index: int, token: CancellationToken, epoch: int
    ) -> None:
        try:
            buffer = await self._narrate(index, token)
        except Exception as exc:
            _debug(f"prefetch failed slide={index}: {exc}")
            return
        if buffer is None or token.cancelled or epoch != self._epoch:
            return
        if self._current_index >= index:
            _debug(f"prefetch for slide={index} arrived too late")
            return
        self._prefetch.put(index, buffer)
        _debug(f"prefetched slide={index}")

    def _handle_failure(self, token: CancellationToken, message: str) -> None:
        if token.cancelled:
            _debug(f"ignoring failure of cancelled attempt: {message}")
            return
        self._fail(message)

    def _fail(self, message: str) -> None:
        _debug(f"session failed index={self._current_index}: {message}")
        self._last_error = message
        self._reset(TutoringState.IDLE)
        self._notify("on_session_error", message)

    def _complete(self) -> None:
        self._reset(TutoringState.ENDED)
        _debug("session complete")
        self._notify("on_session_ended")

    def _notify(self, name: str, *args: object) -> None:
        try:
            getattr(self._callbacks, name)(*args)
        except Exception as exc:
            _debug(f"host callback {name} raised: {exc}")
