from __future__ import annotations

from pyreduxed._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    state = {
        "user": {"name": "ada", "password": "pw", "apiKey": "k"},
        "token": "abc",
        "items": [{"secret": "s", "id": 1}],
    }

    redacted = redact_for_log(state)

    assert redacted["token"] == "<redacted>"
    assert redacted["user"]["password"] == "<redacted>"
    assert redacted["user"]["apiKey"] == "<redacted>"
    assert redacted["user"]["name"] == "ada"
    assert redacted["items"][0] == {"secret": "<redacted>", "id": 1}


def test_redact_for_log_truncates_long_strings_and_collections() -> None:
    redacted = redact_for_log({"value": "x" * 600, "list": list(range(10))}, max_string=10, max_items=3)

    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]
    assert redacted["list"] == [0, 1, 2, "<7 more items>"]
