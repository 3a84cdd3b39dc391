"""Custom exceptions for Label Recovery."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from label_recovery.models import ScanState


class LabelRecoveryError(Exception):
    """Base exception for all Label Recovery errors."""


class ConfigurationError(LabelRecoveryError):
    """Exception raised for configuration related errors."""


class TransportFailure(LabelRecoveryError):
    """Exception raised when a Gmail API call fails (network, auth, quota)."""


class AuthenticationError(TransportFailure):
    """Exception raised for authentication failures, including unauthenticated calls."""


class LogExpiredError(TransportFailure):
    """The requested change-log position is older than the provider retains."""


class AnchorUnavailableError(LabelRecoveryError):
    """No log position could be found for a time boundary."""


class PartialFetchFailure(LabelRecoveryError):
    """A chunk of message detail requests failed."""

    def __init__(self, chunk_index: int, message_ids: list[str], cause: BaseException) -> None:
        self.chunk_index = chunk_index
        self.message_ids = message_ids
        self.cause = cause
        super().__init__(
            f"detail fetch failed for chunk {chunk_index} ({len(message_ids)} ids): {cause}"
        )


class ScanFailure(LabelRecoveryError):
    """A label timeline scan failed.

    Carries the stage the scan was in and the underlying cause so callers can
    report a scan-level error without inspecting the exception chain.
    """

    def __init__(self, stage: ScanState, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"scan failed during {stage.value}: {cause}")
