"""
Global pricing settings service.

The settings record is a singleton created on first read from the
configured pricing defaults.
"""

from sqlalchemy import select

from switchboard_quoting.config.settings import settings
from switchboard_quoting.models.pricing import GLOBAL_SETTINGS_ID, PricingSettings
from switchboard_quoting.schemas.quote import SettingsSnapshot, SettingsUpdate
from switchboard_quoting.services.base import BaseService

SNAPSHOT_FIELDS = tuple(SettingsSnapshot.model_fields)


class SettingsService(BaseService):
    """Read, update and snapshot the global pricing settings."""

    service_name = "settings"

    async def get_settings(self) -> PricingSettings:
        """Return the singleton, creating it from defaults if absent."""
        result = await self.session.execute(
            select(PricingSettings).where(PricingSettings.id == GLOBAL_SETTINGS_ID)
        )
        record = result.scalar_one_or_none()
        if record is not None:
            return record

        defaults = settings.pricing
        record = PricingSettings(
            id=GLOBAL_SETTINGS_ID,
            **{name: getattr(defaults, name) for name in SNAPSHOT_FIELDS},
        )
        self.session.add(record)
        await self._flush()
        self.logger.log_operation_complete("create_default_settings")
        return record

    async def update_settings(self, update: SettingsUpdate) -> PricingSettings:
        """Apply a partial update. Existing quote snapshots are unaffected."""
        self.logger.log_operation_start("update_settings")
        record = await self.get_settings()
        changes = update.model_dump(exclude_unset=True)
        for name, value in changes.items():
            setattr(record, name, value)
        await self._flush()
        self.logger.log_operation_complete("update_settings", fields=sorted(changes))
        return record

    async def snapshot(self) -> SettingsSnapshot:
        """Frozen copy of the current settings for a new quote."""
        record = await self.get_settings()
        return SettingsSnapshot(**{name: getattr(record, name) for name in SNAPSHOT_FIELDS})
