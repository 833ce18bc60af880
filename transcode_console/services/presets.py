from __future__ import annotations

import logging
from typing import List, Tuple

from ..errors import ConfirmationRequired, ValidationError
from ..models import Preset
from .api_client import ApiClient

logger = logging.getLogger(__name__)

# Transcode types pre-selected on the submit form.
DEFAULT_TRANSCODE_TYPES = ("mp4_standard", "thumbnail")


class PresetCatalog:
    def __init__(self, client: ApiClient):
        self.client = client
        self.presets: List[Preset] = []

    async def load(self) -> List[Preset]:
        self.presets = await self.client.list_presets()
        return self.presets

    def transcode_type_options(self) -> List[Tuple[str, str, bool]]:
        """``(preset_id, label, selected)`` for every loaded preset."""
        return [
            (p.preset_id, f"{p.name} ({p.preset_id})", p.preset_id in DEFAULT_TRANSCODE_TYPES)
            for p in self.presets
        ]

    async def delete(self, preset_id: str, confirmed: bool = False) -> None:
        known = next((p for p in self.presets if p.preset_id == preset_id), None)
        if known is not None and known.is_builtin:
            raise ValidationError("Builtin presets cannot be deleted")
        if not confirmed:
            raise ConfirmationRequired("delete_preset")
        await self.client.delete_preset(preset_id)
        self.presets = [p for p in self.presets if p.preset_id != preset_id]
        logger.info("Deleted preset %s", preset_id)
