"""
Capability Probe - decides whether the on-device backend is usable.
"""

import logging
from typing import Optional

from ..llm.local_provider import OnDeviceProvider
from ..llm.local_runtime import LocalAvailability

logger = logging.getLogger(__name__)


class LocalCapabilityProbe:
    """
    Caches the on-device availability for the process.

    ``available`` is what backend selection consults; ``status`` keeps the
    three-state answer so hosts can show a "warming up" state while the
    model downloads.
    """

    def __init__(self, provider: OnDeviceProvider):
        self.provider = provider
        self.status: Optional[LocalAvailability] = None

    @property
    def available(self) -> bool:
        """Last known answer; False until the first check."""
        return self.status is not None and self.status != LocalAvailability.UNAVAILABLE

    @property
    def is_warming_up(self) -> bool:
        return self.status == LocalAvailability.DOWNLOADING

    async def check_availability(self) -> bool:
        """Query the device if not checked yet. Never raises."""
        if self.status is None:
            return await self.refresh()
        return self.available

    async def refresh(self) -> bool:
        """Re-query the device. Never raises."""
        try:
            status = await self.provider.availability()
        except Exception as e:
            logger.warning(f"Local capability check failed: {e}")
            status = LocalAvailability.UNAVAILABLE

        if status != self.status:
            logger.info(f"On-device model status: {self.status} -> {status.value}")
        self.status = status
        return self.available
