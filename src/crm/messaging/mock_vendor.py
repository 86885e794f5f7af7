"""
Mock messaging vendor.

Succeeds with a configurable probability and otherwise fails with one of a
fixed set of vendor errors. A seed makes runs reproducible.
"""

import random
import uuid

from crm.messaging.interface import (
    VendorProvider,
    VendorSendRequest,
    VendorSendResult,
    VendorStatus,
)
from crm.shared.database import utcnow
from crm.shared.logging import get_logger

logger = get_logger(__name__)

FAILURE_MESSAGES = (
    "Invalid email address",
    "Recipient mailbox full",
    "Network timeout",
    "Service temporarily unavailable",
    "Invalid message format",
)


class MockVendorProvider(VendorProvider):
    """In-process vendor used in development and tests."""

    def __init__(self, success_rate: float = 0.9, seed: int | None = None) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self._success_rate = success_rate
        self._random = random.Random(seed)
        self._sent: list[VendorSendRequest] = []

    @property
    def sent(self) -> list[VendorSendRequest]:
        return self._sent.copy()

    def reset(self) -> None:
        self._sent.clear()

    def configure(self, success_rate: float | None = None, seed: int | None = None) -> None:
        if success_rate is not None:
            self._success_rate = success_rate
        if seed is not None:
            self._random.seed(seed)

    async def send(self, request: VendorSendRequest) -> VendorSendResult:
        self._sent.append(request)
        now = utcnow()

        if self._random.random() < self._success_rate:
            vendor_message_id = f"vendor_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"
            logger.debug(
                "Mock vendor: message sent",
                extra={"log_id": str(request.log_id), "vendor_message_id": vendor_message_id},
            )
            return VendorSendResult(
                log_id=request.log_id,
                status=VendorStatus.SENT,
                sent_at=now,
                vendor_message_id=vendor_message_id,
            )

        error_message = self._random.choice(FAILURE_MESSAGES)
        logger.debug(
            "Mock vendor: message failed",
            extra={"log_id": str(request.log_id), "error": error_message},
        )
        return VendorSendResult(
            log_id=request.log_id,
            status=VendorStatus.FAILED,
            sent_at=now,
            error_message=error_message,
        )
