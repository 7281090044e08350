from __future__ import annotations

from styleweather._redact import redact_for_log


def test_redact_for_log_masks_secrets() -> None:
    payload = {
        "stylePreference": "casual",
        "accessToken": "abc",
        "user": {"email": "a@b.c", "gender": "female"},
        "api-key": "k",
    }

    redacted = redact_for_log(payload)
    assert redacted["stylePreference"] == "casual"
    assert redacted["accessToken"] == "<redacted>"
    assert redacted["api-key"] == "<redacted>"
    assert redacted["user"] == {"email": "<redacted>", "gender": "female"}


def test_redact_for_log_coarsens_coordinates() -> None:
    redacted = redact_for_log({"location": {"latitude": 37.566535, "lon": 126.9779692, "lng": "secret"}})
    assert redacted["location"] == {"latitude": 37.57, "lon": 126.98, "lng": "<redacted>"}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"feedback": long_value}, max_string=10)
    assert redacted["feedback"].startswith("x" * 10)
    assert "<truncated>" in redacted["feedback"]


def test_redact_for_log_walks_sequences() -> None:
    redacted = redact_for_log([{"password": "pw"}, b"\x00\x01", 3])
    assert redacted == [{"password": "<redacted>"}, "<binary:2b>", 3]
