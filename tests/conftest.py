"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import FakeGmailClient


@pytest.fixture
def fake_gmail() -> FakeGmailClient:
    """Provide an empty fake Gmail transport."""
    return FakeGmailClient()


@pytest.fixture
def mock_settings():
    """Provide settings suitable for unit tests."""
    from label_recovery.config import Settings

    return Settings(
        log_level="DEBUG",
        debug=True,
        detail_chunk_size=20,
        history_retention_days=7,
    )


@pytest.fixture
def sample_email_data() -> dict:
    """Provide sample email data structure."""
    return {
        "id": "msg123456",
        "threadId": "thread789",
        "historyId": "18446744073709551557",
        "internalDate": "1760000000000",
        "sizeEstimate": 2048,
        "labelIds": ["Label_42", "UNREAD"],
        "snippet": "Weekly Newsletter - Python Tips",
        "payload": {
            "headers": [
                {"name": "Subject", "value": "Weekly Newsletter - Python Tips"},
                {"name": "From", "value": "Python <newsletter@python.org>"},
                {"name": "To", "value": "user@example.com"},
                {"name": "subject", "value": "duplicate subject"},
            ],
        },
    }
