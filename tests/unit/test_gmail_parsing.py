"""Unit tests for Gmail metadata parsing helpers."""

from datetime import datetime, timezone

import pytest

from label_recovery.gmail.parsing import message_to_raw_message, parse_position


def test_message_to_raw_message_parses_basic_fields(sample_email_data) -> None:
    message = message_to_raw_message(sample_email_data)

    assert message.id == "msg123456"
    assert message.conversation_id == "thread789"
    assert message.header("Subject") == "Weekly Newsletter - Python Tips"
    assert message.header("from") == "Python <newsletter@python.org>"
    assert message.snippet == "Weekly Newsletter - Python Tips"
    assert message.size_estimate == 2048
    assert message.label_ids == ["Label_42", "UNREAD"]
    assert message.internal_date == datetime.fromtimestamp(1_760_000_000, tz=timezone.utc)


def test_history_id_keeps_full_precision(sample_email_data) -> None:
    message = message_to_raw_message(sample_email_data)

    assert message.log_position == 18446744073709551557
    # A float round-trip would land on a different value.
    assert int(float("18446744073709551557")) != message.log_position


def test_missing_thread_falls_back_to_message_id() -> None:
    message = message_to_raw_message({"id": "m1", "payload": {"headers": []}})

    assert message.conversation_id == "m1"
    assert message.internal_date is None
    assert message.log_position is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12345", 12345),
        (" 987 ", 987),
        (42, 42),
        ("9223372036854775809", 9223372036854775809),
        (None, None),
        ("", None),
        ("12a", None),
        ("-5", None),
        (-5, None),
        (True, None),
    ],
)
def test_parse_position(raw, expected) -> None:
    assert parse_position(raw) == expected
