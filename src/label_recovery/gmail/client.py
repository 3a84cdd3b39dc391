"""Gmail API client implementation.

This module provides the mail transport used by the label timeline resolver.

Notes:
    The Google API client is synchronous. This project wraps those calls using
    `asyncio.to_thread` so the rest of the codebase can remain async-friendly.
    The client is constructed explicitly and passed to the resolver; it holds
    the authorized service between `authenticate()` and `close()`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, TypeVar

import structlog
from googleapiclient.errors import HttpError

from label_recovery.config import Settings
from label_recovery.exceptions import (
    AuthenticationError,
    ConfigurationError,
    LogExpiredError,
    TransportFailure,
)
from label_recovery.models import GmailLabel

logger = structlog.get_logger()

T = TypeVar("T")


def _http_status(exc: HttpError) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        resp = getattr(exc, "resp", None)
        status = getattr(resp, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


class GmailClient:
    """Gmail API client for label recovery.

    Lifecycle: `authenticate()` builds the authorized service, every
    operation goes through `_call()`, and `close()` releases it. The client
    can also be used as an async context manager.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Gmail client.

        Args:
            settings: Application settings. If None, uses default settings.
        """
        from label_recovery.config import get_settings

        self.settings = settings or get_settings()
        self._service: Any | None = None
        self._credentials: Any | None = None
        logger.info("gmail_client_initialized")

    async def __aenter__(self) -> GmailClient:
        await self.authenticate()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def authenticate(self) -> None:
        """Authenticate with Gmail API using OAuth2.

        Raises:
            ConfigurationError: If the OAuth client secrets file is missing.
            AuthenticationError: If authentication fails.
        """

        if self._service is not None:
            return

        credentials_path = Path(self.settings.gmail_credentials_path)
        token_path = Path(self.settings.gmail_token_path)
        scope = self.settings.gmail_scope

        if not credentials_path.exists():
            raise ConfigurationError(
                f"Gmail credentials file not found: {credentials_path}. "
                "See README.md -> Gmail API Setup."
            )

        logger.info(
            "gmail_authentication_started",
            credentials_path=str(credentials_path),
            token_path=str(token_path),
            scope=scope,
        )

        try:
            self._credentials, self._service = await asyncio.to_thread(
                self._build_service,
                credentials_path,
                token_path,
                scope,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_authentication_failed", error=str(exc))
            raise AuthenticationError(str(exc)) from exc

        logger.info("gmail_authentication_completed")

    async def close(self) -> None:
        """Release the authorized service. Safe to call more than once."""
        service, self._service = self._service, None
        self._credentials = None
        if service is not None:
            close = getattr(service, "close", None)
            if callable(close):
                await asyncio.to_thread(close)
            logger.info("gmail_client_closed")

    def current_credential(self) -> str | None:
        """Return the current OAuth access token, or None if not authenticated."""
        if self._credentials is None:
            return None
        return getattr(self._credentials, "token", None)

    async def search_single(self, query: str) -> str | None:
        """Return the id of the first message matching `query`, if any.

        Gmail search results are ordered newest first.
        """
        response = await self._call(
            "search_single",
            lambda service: service.users()
            .messages()
            .list(userId=self._user_id, q=query, maxResults=1)
            .execute(),
            query=query,
        )
        messages = response.get("messages") or []
        if not messages:
            return None
        message_id = messages[0].get("id")
        return str(message_id) if message_id else None

    async def get_message(
        self,
        message_id: str,
        *,
        format: str = "metadata",
        metadata_headers: list[str] | None = None,
    ) -> dict[str, Any]:
        """Get a specific message by ID.

        Args:
            message_id: The Gmail message ID.
            format: Gmail response format (minimal, metadata, full).
            metadata_headers: Headers to include when format is metadata.

        Returns:
            Message data dictionary.

        Raises:
            TransportFailure: If the API request fails.
        """
        return await self._call(
            "get_message",
            lambda service: service.users()
            .messages()
            .get(
                userId=self._user_id,
                id=message_id,
                format=format,
                metadataHeaders=metadata_headers,
            )
            .execute(),
            message_id=message_id,
        )

    async def get_profile(self) -> dict[str, Any]:
        """Return the mailbox profile, including the current `historyId`."""
        return await self._call(
            "get_profile",
            lambda service: service.users().getProfile(userId=self._user_id).execute(),
        )

    async def list_history_page(
        self,
        start_position: int,
        *,
        history_types: list[str],
        page_token: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of the mailbox change log.

        Raises:
            LogExpiredError: If `start_position` is older than Gmail retains.
            TransportFailure: For any other API failure.
        """
        return await self._call(
            "list_history_page",
            lambda service: service.users()
            .history()
            .list(
                userId=self._user_id,
                startHistoryId=str(start_position),
                historyTypes=history_types,
                pageToken=page_token,
            )
            .execute(),
            start_position=str(start_position),
            expired_on_404=True,
        )

    async def search_page(
        self,
        query: str,
        *,
        page_token: str | None = None,
        page_size: int = 500,
    ) -> dict[str, Any]:
        """Fetch one page of message ids matching a Gmail search query."""
        return await self._call(
            "search_page",
            lambda service: service.users()
            .messages()
            .list(userId=self._user_id, q=query, maxResults=page_size, pageToken=page_token)
            .execute(),
            query=query,
            page_size=page_size,
        )

    async def list_labels(self) -> list[GmailLabel]:
        """List mailbox labels sorted by display name."""
        response = await self._call(
            "list_labels",
            lambda service: service.users().labels().list(userId=self._user_id).execute(),
        )
        labels = [
            GmailLabel(id=str(lbl["id"]), name=str(lbl["name"]), type=str(lbl.get("type") or "user"))
            for lbl in response.get("labels") or []
            if lbl.get("id") and lbl.get("name")
        ]
        return sorted(labels, key=lambda lbl: lbl.name.lower())

    async def batch_modify(
        self,
        message_ids: list[str],
        *,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> None:
        """Add and remove labels on up to 1000 messages in one request."""
        body: dict[str, Any] = {"ids": message_ids}
        if add_label_ids:
            body["addLabelIds"] = add_label_ids
        if remove_label_ids:
            body["removeLabelIds"] = remove_label_ids

        await self._call(
            "batch_modify",
            lambda service: service.users()
            .messages()
            .batchModify(userId=self._user_id, body=body)
            .execute(),
            message_count=len(message_ids),
        )

    @property
    def _user_id(self) -> str:
        return self.settings.gmail_user_id

    async def _call(
        self,
        operation: str,
        request: Callable[[Any], T],
        *,
        expired_on_404: bool = False,
        **context: Any,
    ) -> T:
        service = self._ensure_authenticated()
        logger.debug("gmail_request", operation=operation, **context)

        try:
            return await asyncio.to_thread(request, service)
        except HttpError as exc:
            status = _http_status(exc)
            if expired_on_404 and status == 404:
                logger.warning("gmail_history_expired", operation=operation, **context)
                raise LogExpiredError(str(exc)) from exc
            logger.exception(
                "gmail_request_failed", operation=operation, status=status, error=str(exc), **context
            )
            raise TransportFailure(str(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_request_failed", operation=operation, error=str(exc), **context)
            raise TransportFailure(str(exc)) from exc

    def _ensure_authenticated(self) -> Any:
        if self._service is None:
            raise AuthenticationError(
                "Gmail client is not authenticated. Call await GmailClient.authenticate() first."
            )
        return self._service

    def _build_service(self, credentials_path: Path, token_path: Path, scope: str) -> tuple[Any, Any]:
        # Imported lazily to keep import-time cost low and tests fast.
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow
        from googleapiclient.discovery import build

        creds: Credentials | None = None
        if token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path), scopes=[scope])

        if creds is not None and creds.expired and creds.refresh_token:
            creds.refresh(Request())
            token_path.write_text(creds.to_json(), encoding="utf-8")

        if creds is None or not creds.valid:
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes=[scope])
            creds = flow.run_local_server(port=0)
            token_path.parent.mkdir(parents=True, exist_ok=True)
            token_path.write_text(creds.to_json(), encoding="utf-8")

        # cache_discovery=False prevents writing discovery docs to disk.
        return creds, build("gmail", "v1", credentials=creds, cache_discovery=False)
