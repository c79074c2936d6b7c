"""
Theme Cache

Read-through cache in front of the tenant registry's theme data. Entries are
removed synchronously by the admin write path rather than aged out, so a
saved theme is visible to the very next read.
"""

from structlog import get_logger

from ..errors import TenantNotFound
from ..tenant_management.models import DEFAULT_THEME, Tenant, Theme
from ..tenant_management.registry import TenantRegistry

logger = get_logger()


class ThemeCache:
    """Per-process theme cache keyed by tenant id."""

    def __init__(self, registry: TenantRegistry):
        """
        Initialize theme cache.

        Args:
            registry: Registry used to load themes on a miss
        """
        self.registry = registry
        self._entries: dict[str, Theme] = {}
        # Bumped on every invalidation; a load only populates the entry if the
        # generation it started under is still current
        self._generations: dict[str, int] = {}

    async def get_theme(self, tenant_id: str) -> Theme:
        """
        Get the effective theme for a tenant.

        Returns the default theme when the tenant has no theme of its own,
        has custom branding switched off, or has no record.
        """
        cached = self._entries.get(tenant_id)
        if cached is not None:
            return cached

        generation = self._generations.get(tenant_id, 0)
        try:
            tenant = await self.registry.get(tenant_id)
        except TenantNotFound:
            logger.info("theme_default_for_missing_tenant", tenant_id=tenant_id)
            return DEFAULT_THEME

        theme = self._effective_theme(tenant)
        if self._generations.get(tenant_id, 0) == generation:
            self._entries[tenant_id] = theme
        else:
            logger.debug("theme_cache_fill_skipped", tenant_id=tenant_id)
        return theme

    def invalidate(self, tenant_id: str) -> None:
        """Drop the cached theme so the next read goes to the registry."""
        self._generations[tenant_id] = self._generations.get(tenant_id, 0) + 1
        self._entries.pop(tenant_id, None)
        logger.info("theme_cache_invalidated", tenant_id=tenant_id)

    def __contains__(self, tenant_id: str) -> bool:
        return tenant_id in self._entries

    @staticmethod
    def _effective_theme(tenant: Tenant) -> Theme:
        if tenant.theme is None or not tenant.settings.custom_branding:
            return DEFAULT_THEME
        return tenant.theme
