"""
Webhook notifications for backup and restore progress.

Notifications are a best-effort side channel: a failed notification is
logged and never aborts a dump or restore task.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import httpx

from ..config import AppConfig
from ..exceptions import NotificationError

DEFAULT_USERNAME = "PSQL BACKUPER"


@dataclass(frozen=True)
class TextMessage:
    """A short text notification."""
    content: str


@dataclass(frozen=True)
class FileUpload:
    """A file attachment notification."""
    path: Path
    display_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or self.path.name


NotificationEvent = Union[TextMessage, FileUpload]


class Notifier(Protocol):
    """Interface for notification sinks."""

    async def send_message(self, text: str) -> None:
        ...

    async def send_file(self, path: Path, display_name: Optional[str] = None) -> None:
        ...

    async def dispatch(self, event: NotificationEvent) -> None:
        ...


class _EventDispatchMixin:

    async def dispatch(self, event: NotificationEvent) -> None:
        """Send a TextMessage or FileUpload event."""
        if isinstance(event, TextMessage):
            await self.send_message(event.content)
        elif isinstance(event, FileUpload):
            await self.send_file(event.path, event.name)
        else:
            raise TypeError(f"Unsupported notification event: {event!r}")


class NullNotifier(_EventDispatchMixin):
    """Notifier used when no webhook is configured. Does nothing."""

    async def send_message(self, text: str) -> None:
        return None

    async def send_file(self, path: Path, display_name: Optional[str] = None) -> None:
        return None


class WebhookNotifier(_EventDispatchMixin):
    """
    Posts messages and file attachments to a Discord-style webhook.

    Each call performs exactly one HTTP request. There is no retry, batching
    or rate limiting. Files are read fully into memory before upload.
    """

    def __init__(
        self,
        url: str,
        username: str = DEFAULT_USERNAME,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize webhook notifier.

        Args:
            url: Webhook endpoint
            username: Display name attached to every post
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
            logger: Logger instance
        """
        self.url = url
        self.username = username
        self.timeout = timeout
        self.transport = transport
        self.logger = logger or logging.getLogger(__name__)

    async def send_message(self, text: str) -> None:
        """
        Post a text message.

        Raises:
            NotificationError: If the webhook is unreachable or rejects the payload
        """
        await self._post(json={"content": text, "username": self.username})
        self.logger.debug(f"Webhook message sent: {text}")

    async def send_file(self, path: Path, display_name: Optional[str] = None) -> None:
        """
        Upload a file as an attachment.

        Raises:
            NotificationError: If the file cannot be read, or the webhook is
                unreachable or rejects the upload
        """
        path = Path(path)
        name = display_name or path.name

        try:
            content = path.read_bytes()
        except OSError as e:
            raise NotificationError(f"Could not read {path} for upload: {e}") from e

        await self._post(
            data={"payload_json": json.dumps({"username": self.username})},
            files={"file": (name, content)}
        )
        self.logger.debug(f"Webhook file uploaded: {name} ({len(content)} bytes)")

    async def _post(self, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NotificationError(f"Webhook request failed: {e}") from e

        if response.status_code >= 400:
            raise NotificationError(
                f"Webhook rejected payload: HTTP {response.status_code} {response.text[:200]}"
            )
        return response


def create_notifier(config: AppConfig, logger: Optional[logging.Logger] = None) -> Notifier:
    """
    Create the notifier matching the configuration.

    Returns a WebhookNotifier when a webhook URL is configured, otherwise a
    NullNotifier.
    """
    if not config.webhook_url:
        return NullNotifier()

    return WebhookNotifier(
        url=config.webhook_url,
        username=config.webhook_username,
        logger=logger
    )


async def notify_best_effort(
    notifier: Notifier,
    event: NotificationEvent,
    logger: Optional[logging.Logger] = None
) -> bool:
    """
    Dispatch an event, swallowing notification failures.

    Returns:
        True if the event was delivered, False if it failed
    """
    logger = logger or logging.getLogger(__name__)
    try:
        await notifier.dispatch(event)
        return True
    except NotificationError as e:
        logger.warning(f"Notification failed: {e}")
        return False
