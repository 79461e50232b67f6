# Settings_Library.py
# Description: Read/update access to the user's app settings
#
# Imports
from typing import Any, Dict, Mapping
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.DB.local_store import LocalDocument
from quizdeck.schemas import AppSettings, default_settings
from quizdeck.Sync.reconciler import has_settings_difference
#
########################################################################################################################
#
# Functions:


class SettingsLibrary:
    """Settings are validated against `AppSettings` on every write; unknown keys are kept."""

    def __init__(self, document: LocalDocument):
        self.document = document

    async def get(self) -> Dict[str, Any]:
        return await self.document.get()

    async def update(self, changes: Mapping[str, Any]) -> Dict[str, Any]:
        current = await self.document.get()
        updated = AppSettings.model_validate({**current, **changes}).to_record()
        await self.document.set(updated)
        logger.debug(f"Settings updated: {sorted(k for k in changes)}")
        return updated

    async def reset(self) -> Dict[str, Any]:
        defaults = default_settings()
        await self.document.set(defaults)
        logger.info("Settings reset to defaults")
        return defaults

    async def is_default(self) -> bool:
        return not has_settings_difference(await self.document.get(), default_settings())

#
# End of Settings_Library.py
########################################################################################################################
