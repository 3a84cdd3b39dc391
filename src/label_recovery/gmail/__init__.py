"""Gmail transport and payload parsing."""

from .client import GmailClient
from .parsing import message_to_raw_message, parse_position

__all__ = ["GmailClient", "message_to_raw_message", "parse_position"]
