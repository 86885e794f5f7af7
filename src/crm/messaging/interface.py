"""
Messaging vendor interface definition.

Campaign delivery hands every personalized message to a ``VendorProvider``.
Providers report per-message success or failure; they do not raise for an
ordinary rejected message.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class VendorStatus(str, Enum):
    """Outcome of a single send attempt."""

    SENT = "SENT"
    FAILED = "FAILED"


@dataclass(frozen=True)
class VendorSendRequest:
    """One personalized message addressed to one customer."""

    log_id: UUID
    customer_email: str
    customer_name: str
    subject: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VendorSendResult:
    """Result of a send attempt."""

    log_id: UUID
    status: VendorStatus
    sent_at: datetime
    vendor_message_id: str | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.status == VendorStatus.SENT


class VendorProvider(ABC):
    """Abstract interface for messaging vendors."""

    @abstractmethod
    async def send(self, request: VendorSendRequest) -> VendorSendResult:
        """Send one message and report the outcome."""
        ...
