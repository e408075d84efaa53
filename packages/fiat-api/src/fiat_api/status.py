"""Runtime switch for permission enforcement."""

from __future__ import annotations

import logging

from fiat_core.config.models import FiatClientConfig

logger = logging.getLogger(__name__)


class FiatStatus:
    """Whether Fiat is enforced, and what to do when it cannot be reached."""

    def __init__(self, config: FiatClientConfig) -> None:
        self._enabled = config.enabled
        self._legacy_fallback = config.legacy_fallback
        self._granted_authorities = config.granted_authorities_enabled

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        if enabled != self._enabled:
            logger.info("Fiat enforcement %s", "enabled" if enabled else "disabled")
        self._enabled = enabled

    @property
    def legacy_fallback(self) -> bool:
        """Allow requests (fail open) when the permission source is unavailable."""
        return self._legacy_fallback

    def set_legacy_fallback(self, enabled: bool) -> None:
        self._legacy_fallback = enabled

    @property
    def granted_authorities_enabled(self) -> bool:
        """Expose the roles Fiat reports for a principal as granted authorities."""
        return self._granted_authorities

    def set_granted_authorities_enabled(self, enabled: bool) -> None:
        self._granted_authorities = enabled
