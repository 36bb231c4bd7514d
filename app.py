from __future__ import annotations

import argparse
import asyncio
import os
import sys
from contextlib import aclosing

from api.gemini import GeminiClient
from audio.engine import AudioEngine
from audio.playback import SoundDeviceOutput
from audio.tts_factory import build_tts_provider
from config import VALID_TUTOR_MODES, AppConfig, load_config
from prompt_builder import (
    build_chat_prompt,
    build_chat_system_prompt,
    build_system_prompt_with_warnings,
)
from tutor.errors import TutorError, describe_error
from tutor.narration import GeminiNarrationSource, NarrationSource, iter_in_thread
from tutor.relevance import find_most_relevant_slide
from tutor.session import TutoringState, TutorSession
from tutor.slides import Deck, load_deck

_DEBUG_APP = os.getenv("SLIDETUTOR_DEBUG", "0").strip() == "1"

HELP_TEXT = """Commands:
  start [rapid|normal]  start the auto tutor from the first slide
  pause | resume        pause or continue narration
  restart               start over with the current pace
  end                   stop the session
  ask <question>        ask about the document (pauses the tutor)
  dismiss               clear the last error
  status                show the session state
  quit                  exit"""

_STATE_TEXT = {
    TutoringState.RUNNING: "Session in progress...",
    TutoringState.GENERATING: "Generating explanation...",
    TutoringState.PAUSED: "Session Paused",
}


def _debug(msg: str) -> None:
    if _DEBUG_APP:
        print(f"[app] {msg}", flush=True)


class TutorApp:
    def __init__(
        self,
        cfg: AppConfig,
        deck: Deck,
        gemini: GeminiClient,
        narration: NarrationSource,
        engine: AudioEngine,
    ) -> None:
        self._cfg = cfg
        self._deck = deck
        self._gemini = gemini
        self._engine = engine
        self._last_status = ""
        self._chat_tasks: set[asyncio.Task] = set()
        self.session = TutorSession(
            deck.slides,
            narration,
            engine,
            callbacks=self,
            pacing_delay=cfg.tutor_pacing_delay_ms / 1000.0,
            renotify_on_resume=cfg.tutor_renotify_on_resume,
        )

    def on_slide_changed(self, index: int) -> None:
        slide = self._deck.slides[index]
        self._set_status(f"Slide {index + 1}/{len(self._deck.slides)}: {slide.title}")

    def on_session_ended(self) -> None:
        self._set_status("Tutor session ended")

    def on_session_error(self, message: str) -> None:
        self._set_status(f"Audio Generation Failed: {describe_error(message)}")

    async def run(self, autostart_mode: str | None = None) -> None:
        print(HELP_TEXT, flush=True)
        self._set_status(f"Deck ready: {self._deck.name} ({len(self._deck.slides)} slides)")
        try:
            if autostart_mode:
                await self.handle_command(f"start {autostart_mode}")
            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                if not await self.handle_command(line):
                    break
        finally:
            await self.close()

    async def close(self) -> None:
        if self._chat_tasks:
            self._engine.stop()
            await asyncio.gather(*self._chat_tasks, return_exceptions=True)
        await self.session.aclose()

    async def handle_command(self, line: str) -> bool:
        cmd, _, arg = line.strip().partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()
        if not cmd:
            return True
        if cmd in {"quit", "exit", "q"}:
            self._set_status("Exiting")
            return False

        session = self.session
        if cmd == "start":
            mode = arg.lower() or self._cfg.tutor_default_mode
            if mode not in VALID_TUTOR_MODES:
                self._set_status(f"Unknown pace '{mode}'. Use rapid or normal.")
                return True
            await session.start(mode)
        elif cmd == "restart":
            await session.restart()
        elif cmd == "pause":
            if not session.pause():
                self._set_status("Nothing to pause")
        elif cmd == "resume":
            if not session.resume():
                self._set_status("Nothing to resume")
        elif cmd == "end":
            session.end()
        elif cmd == "ask":
            if not arg:
                self._set_status("Usage: ask <question>")
                return True
            task = asyncio.create_task(self.ask(arg))
            self._chat_tasks.add(task)
            task.add_done_callback(self._chat_tasks.discard)
        elif cmd == "dismiss":
            session.dismiss_error()
            self._set_status(self.describe_state())
        elif cmd == "status":
            self._set_status(self.describe_state())
        elif cmd == "help":
            print(HELP_TEXT, flush=True)
        else:
            self._set_status(f"Unknown command '{cmd}'. Type 'help'.")
        return True

    async def ask(self, question: str) -> None:
        # Chatting takes over the speaker, so the tutor yields first.
        self.session.interrupt()
        self._engine.stop()
        self._set_status("Thinking...")
        prompt = build_chat_prompt(self._deck.document_text, question)
        parts: list[str] = []
        try:
            fragments = self._gemini.generate_stream(prompt, build_chat_system_prompt())
            async with aclosing(iter_in_thread(fragments)) as pulled:
                async for fragment in pulled:
                    parts.append(fragment)
                    print(fragment, end="", flush=True)
        except Exception as exc:
            self._set_status(f"Sorry, I encountered an error: {exc}")
            return
        answer = "".join(parts).strip()
        if not answer:
            self._set_status("No answer received")
            return
        print(flush=True)
        if self._gemini.last_finish_reason == "MAX_TOKENS":
            self._set_status("Answer was cut short by the model's output limit")
        await asyncio.gather(
            self._speak_answer(answer),
            self._show_relevant_slide(question, answer),
        )

    async def _speak_answer(self, answer: str) -> None:
        try:
            await self._engine.activate()
            await self._engine.speak(answer)
        except TutorError as exc:
            self._set_status(f"Could not speak the answer: {describe_error(str(exc))}")

    async def _show_relevant_slide(self, question: str, answer: str) -> None:
        slides = self._deck.slides
        try:
            index = await asyncio.to_thread(
                find_most_relevant_slide, self._gemini, question, answer, slides
            )
        except Exception as exc:
            _debug(f"could not determine relevant slide: {exc}")
            return
        if index >= 0:
            self._set_status(f"See slide {index + 1}/{len(slides)}: {slides[index].title}")

    def describe_state(self) -> str:
        session = self.session
        if session.last_error:
            return f"Audio Generation Failed: {describe_error(session.last_error)}"
        text = _STATE_TEXT.get(session.state)
        if text is None:
            return "Auto Tutor idle"
        return f"{text} (slide {session.current_index + 1}/{session.slide_count}, {session.mode.value})"

    def _set_status(self, text: str) -> None:
        if text == self._last_status:
            return
        self._last_status = text
        print(f"[status] {text}", flush=True)


def build_app(cfg: AppConfig, deck: Deck) -> TutorApp:
    if not cfg.gemini_api_key:
        raise ValueError("GEMINI_API_KEY is required")
    system_prompt, warnings = build_system_prompt_with_warnings(cfg)
    for warning in warnings:
        print(f"[status] {warning}", flush=True)
    gemini = GeminiClient(cfg.gemini_api_key, model=cfg.gemini_model)
    engine = AudioEngine(
        build_tts_provider(cfg),
        SoundDeviceOutput(
            device=cfg.audio_output_device,
            min_lead_silence_seconds=cfg.tts_min_lead_silence_seconds,
        ),
    )
    narration = GeminiNarrationSource(gemini, system_prompt)
    return TutorApp(cfg, deck, gemini, narration, engine)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Narrate a slide deck with an AI tutor."
    )
    parser.add_argument("deck", help="path to a slide deck JSON file")
    parser.add_argument("--mode", choices=VALID_TUTOR_MODES, default=None)
    parser.add_argument(
        "--autostart", action="store_true", help="start narrating immediately"
    )
    args = parser.parse_args(argv)

    cfg = load_config()
    if args.mode:
        cfg.tutor_default_mode = args.mode
    deck = load_deck(args.deck)
    app = build_app(cfg, deck)
    autostart_mode = cfg.tutor_default_mode if args.autostart else None
    asyncio.run(app.run(autostart_mode))


if __name__ == "__main__":
    main()
