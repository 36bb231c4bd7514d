from __future__ import annotations

import re
from enum import Enum

import requests

QUOTA_MESSAGE = (
    "You have exceeded your API quota for audio generation. "
    "Please check your plan and billing details."
)
INVALID_KEY_MESSAGE = "The provided API key is not valid. Please check your credentials."

INVALID_KEY_GUIDANCE = (
    "The API key for the audio service appears to be invalid. "
    "Please check the key and try again."
)
QUOTA_GUIDANCE = (
    "You've encountered an API quota or billing limit for the audio generation "
    "service. Please check your account status with the provider."
)

_QUOTA_PATTERN = re.compile(r"quota|billing|limit|exhausted", re.IGNORECASE)
_INVALID_PATTERN = re.compile(r"invalid|not valid", re.IGNORECASE)


class SynthesisErrorKind(str, Enum):
    INVALID_CREDENTIAL = "invalid-credential"
    QUOTA_EXCEEDED = "quota-exceeded"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


class TutorError(Exception):
    """Base class for failures surfaced by the tutoring pipeline."""


class GenerationError(TutorError):
    """Narration text could not be produced."""


class SynthesisError(TutorError):
    def __init__(
        self, message: str, kind: SynthesisErrorKind = SynthesisErrorKind.UNKNOWN
    ) -> None:
        super().__init__(message)
        self.kind = kind

    @classmethod
    def from_exception(cls, exc: BaseException) -> SynthesisError:
        kind = classify_failure(exc)
        if kind is SynthesisErrorKind.QUOTA_EXCEEDED:
            message = QUOTA_MESSAGE
        elif kind is SynthesisErrorKind.INVALID_CREDENTIAL:
            message = INVALID_KEY_MESSAGE
        else:
            message = (
                f"An unexpected error occurred while generating the audio track: {exc}"
            )
        return cls(message, kind)


class PlaybackError(TutorError):
    """Audio could not be played on the output device."""


def classify_failure(exc: BaseException) -> SynthesisErrorKind:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return SynthesisErrorKind.TRANSIENT

    text = str(exc).lower()
    status = getattr(exc, "status_code", None)
    if "insufficient_quota" in text or "quota" in text or "exhausted" in text:
        return SynthesisErrorKind.QUOTA_EXCEEDED
    if "invalid" in text and "key" in text:
        return SynthesisErrorKind.INVALID_CREDENTIAL
    if status in (401, 403):
        return SynthesisErrorKind.INVALID_CREDENTIAL
    if status == 429 or "billing" in text:
        return SynthesisErrorKind.QUOTA_EXCEEDED
    if isinstance(status, int) and status >= 500:
        return SynthesisErrorKind.TRANSIENT
    return SynthesisErrorKind.UNKNOWN


def describe_error(message: str) -> str:
    """Turn a session error into the text shown to the user."""
    if _INVALID_PATTERN.search(message):
        return INVALID_KEY_GUIDANCE
    if _QUOTA_PATTERN.search(message):
        return QUOTA_GUIDANCE
    return message
