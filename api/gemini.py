from __future__ import annotations

import json
from typing import Iterable, Iterator

import requests

from api.errors import ApiError, error_detail

FALLBACK_MODELS = ("gemini-flash-lite-latest", "gemini-2.5-flash", "gemini-flash-latest")


class GeminiClient:
    """Streaming text client for the Gemini REST API.

    Narration and chat answers both go through ``generate_stream``; the
    text arrives as deltas so the caller can start working before the
    model has finished.
    """

    def __init__(self, api_key: str, model: str = "gemini-flash-lite-latest") -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = "https://generativelanguage.googleapis.com/v1beta"
        self._session = requests.Session()
        self.last_finish_reason: str | None = None

    def generate_json(self, user_text: str, system_prompt: str, schema: dict) -> object:
        """Ask for a structured reply matching *schema* and decode it."""
        text = "".join(
            self.generate_stream(
                user_text,
                system_prompt,
                generation_config={
                    "responseMimeType": "application/json",
                    "responseSchema": schema,
                },
            )
        )
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ApiError(f"Gemini returned malformed JSON: {text[:200]!r}") from exc

    def generate_stream(
        self,
        user_text: str,
        system_prompt: str,
        generation_config: dict | None = None,
    ) -> Iterator[str]:
        payload = self._build_payload(user_text, system_prompt, generation_config)
        failures: list[str] = []
        for model in self._model_candidates():
            try:
                yield from self._stream_model(model, payload)
                return
            except ApiError as exc:
                if not self._is_missing_model(exc):
                    raise
                failures.append(str(exc))

        raise ApiError(
            "Gemini streamGenerateContent failed for all model candidates: "
            + " | ".join(failures),
            status_code=404,
        )

    def _stream_model(self, model: str, payload: dict) -> Iterator[str]:
        self.last_finish_reason = None
        with self._session.post(
            f"{self.base_url}/models/{model}:streamGenerateContent",
            params={"key": self.api_key, "alt": "sse"},
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=(10, 180),
            stream=True,
        ) as resp:
            if not resp.ok:
                raise ApiError(
                    f"Gemini streamGenerateContent failed for model={model} "
                    f"({resp.status_code}): {error_detail(resp)}",
                    status_code=resp.status_code,
                )

            so_far = ""
            for event in self._iter_events(resp):
                reason = self._extract_finish_reason(event)
                if reason:
                    self.last_finish_reason = reason
                text = self._candidate_text(event)
                if not text:
                    continue
                delta, so_far = self._extract_delta(text, so_far)
                if delta:
                    yield delta

    @classmethod
    def _iter_events(cls, resp: requests.Response) -> Iterator[dict]:
        for data_str in cls._iter_sse_data(resp):
            if data_str == "[DONE]":
                return
            try:
                event = json.loads(data_str)
            except json.JSONDecodeError:
                continue
            if isinstance(event, dict):
                yield event

    @staticmethod
    def _candidate_text(event: dict) -> str:
        candidates = event.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(
            part["text"]
            for part in parts
            if isinstance(part.get("text"), str) and part["text"]
        )

    @staticmethod
    def _extract_finish_reason(event: dict) -> str | None:
        candidates = event.get("candidates") or []
        if not candidates:
            return None
        reason = candidates[0].get("finishReason")
        if isinstance(reason, str) and reason:
            return reason
        return None

    @staticmethod
    def _is_missing_model(exc: ApiError) -> bool:
        text = str(exc)
        return "not found for API version" in text or "is not found" in text

    def _model_candidates(self) -> list[str]:
        return self._unique([self.model, *FALLBACK_MODELS])

    @staticmethod
    def _unique(items: Iterable[str]) -> list[str]:
        out: list[str] = []
        for item in items:
            key = item.strip()
            if key and key not in out:
                out.append(key)
        return out

    @staticmethod
    def _build_payload(
        user_text: str, system_prompt: str, generation_config: dict | None = None
    ) -> dict:
        text = user_text.strip()
        if not text:
            raise ValueError("user_text must be non-empty")
        payload: dict = {"contents": [{"role": "user", "parts": [{"text": text}]}]}
        if system_prompt.strip():
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if generation_config:
            payload["generationConfig"] = dict(generation_config)
        return payload

    @staticmethod
    def _iter_sse_data(resp: requests.Response) -> Iterator[str]:
        pending: list[str] = []
        for line in resp.iter_lines(decode_unicode=True):
            row = (line or "").strip()
            if not row:
                if pending:
                    yield "\n".join(pending)
                    pending.clear()
                continue
            if row.startswith("data:"):
                pending.append(row[5:].strip())
        if pending:
            yield "\n".join(pending)

    @staticmethod
    def _extract_delta(text: str, so_far: str) -> tuple[str, str]:
        # Some responses resend the whole text so far instead of a delta.
        if text.startswith(so_far):
            return text[len(so_far) :], text
        return text, so_far + text
