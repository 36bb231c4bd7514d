from __future__ import annotations

import pytest
import requests

from api.errors import ApiError
from tutor.errors import (
    INVALID_KEY_GUIDANCE,
    INVALID_KEY_MESSAGE,
    QUOTA_GUIDANCE,
    QUOTA_MESSAGE,
    SynthesisError,
    SynthesisErrorKind,
    classify_failure,
    describe_error,
)


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (ApiError("ElevenLabs text-to-speech failed (401): Unauthorized", 401), SynthesisErrorKind.INVALID_CREDENTIAL),
        (ApiError("Invalid API key provided"), SynthesisErrorKind.INVALID_CREDENTIAL),
        (ApiError("You exceeded your current quota (insufficient_quota)", 429), SynthesisErrorKind.QUOTA_EXCEEDED),
        (ApiError("Too many requests", 429), SynthesisErrorKind.QUOTA_EXCEEDED),
        (ApiError("Resource has been exhausted"), SynthesisErrorKind.QUOTA_EXCEEDED),
        (ApiError("upstream unavailable", 503), SynthesisErrorKind.TRANSIENT),
        (requests.Timeout("read timed out"), SynthesisErrorKind.TRANSIENT),
        (ValueError("bad sample"), SynthesisErrorKind.UNKNOWN),
    ],
)
def test_classify_failure(exc: Exception, kind: SynthesisErrorKind) -> None:
    assert classify_failure(exc) is kind


def test_from_exception_uses_friendly_messages() -> None:
    quota = SynthesisError.from_exception(ApiError("insufficient_quota", 429))
    invalid = SynthesisError.from_exception(ApiError("Unauthorized", 401))
    other = SynthesisError.from_exception(RuntimeError("boom"))

    assert str(quota) == QUOTA_MESSAGE
    assert str(invalid) == INVALID_KEY_MESSAGE
    assert str(other).endswith("generating the audio track: boom")
    assert other.kind is SynthesisErrorKind.UNKNOWN


def test_describe_error_maps_known_failures_to_guidance() -> None:
    assert describe_error(INVALID_KEY_MESSAGE) == INVALID_KEY_GUIDANCE
    assert describe_error(QUOTA_MESSAGE) == QUOTA_GUIDANCE
    assert describe_error("Speaker unplugged") == "Speaker unplugged"
