"""
Messaging vendor factory.
"""

from functools import lru_cache

from crm.config import get_settings
from crm.messaging.interface import VendorProvider
from crm.messaging.mock_vendor import MockVendorProvider
from crm.shared.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_vendor_provider() -> VendorProvider:
    """Create and cache the vendor selected by settings."""
    settings = get_settings()

    logger.info(
        "Vendor provider resolved",
        extra={
            "provider": settings.vendor_provider,
            "success_rate": settings.vendor_success_rate,
        },
    )

    if settings.vendor_provider == "mock":
        return MockVendorProvider(
            success_rate=settings.vendor_success_rate,
            seed=settings.vendor_seed,
        )

    raise ValueError(f"Unsupported vendor provider: {settings.vendor_provider}")
