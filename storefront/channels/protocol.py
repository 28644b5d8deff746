"""Notification channel protocol.

- Each channel implements format_message() and send()
- send() never raises for transport errors; it returns a SendResult
- Callers decide whether to log, surface, or retry a failed SendResult
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class NotificationMessage:
    """A notification ready for dispatch to a channel."""
    title: str
    body: str
    recipients: list[str] = field(default_factory=list)
    event_type: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SendResult:
    """Result of sending a notification."""
    success: bool
    channel_id: str
    error: str = ""
    response_id: str = ""  # Provider message ID (email Message-ID)


@runtime_checkable
class Channel(Protocol):
    """Protocol for notification channels."""

    @property
    def channel_id(self) -> str:
        """Unique identifier for this channel."""
        ...

    @property
    def is_configured(self) -> bool:
        """Whether this channel has valid credentials configured."""
        ...

    def format_message(self, message: NotificationMessage) -> Any:
        """Format a notification for this channel's transport."""
        ...

    def send(self, formatted: Any) -> SendResult:
        """Send a formatted message. Returns SendResult."""
        ...


def deliver(channel: Channel, message: NotificationMessage) -> SendResult:
    """Format and send in one step."""
    return channel.send(channel.format_message(message))
