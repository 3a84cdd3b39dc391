"""Integration tests against a real Gmail account.

These need `credentials.json`/`token.json` for a test mailbox and are
deselected by default; run them with `pytest -m integration`.
"""

from pathlib import Path

import pytest

from label_recovery.config import get_settings
from label_recovery.gmail.client import GmailClient
from label_recovery.models import TimeWindow
from label_recovery.timeline import LabelTimelineResolver


@pytest.mark.integration
class TestGmailIntegration:
    """Integration tests for Gmail API."""

    @pytest.mark.asyncio
    async def test_scan_first_user_label(self) -> None:
        """Scan the first user label over the last two days."""
        settings = get_settings()
        if not Path(settings.gmail_credentials_path).exists():
            pytest.skip("Gmail credentials not configured")

        async with GmailClient(settings) as gmail:
            labels = [label for label in await gmail.list_labels() if label.type == "user"]
            if not labels:
                pytest.skip("mailbox has no user labels")

            resolver = LabelTimelineResolver(gmail, settings)
            report = await resolver.scan(
                labels[0].id, labels[0].name, TimeWindow.preset("2days"), limit=50
            )

        members = [mid for card in report.messages for mid in card.member_message_ids]
        assert len(members) == len(set(members))
