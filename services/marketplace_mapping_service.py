"""
Marketplace mapping overrides.

Users can add their own column -> field mappings per marketplace. They are
stored as one JSON document in the settings table and take priority over
the built-in profile mapping.

Stored format:
    {"discogs": [{"sourceColumn": "Acheteur", "targetField": "customer_name"}]}
"""

import json
from typing import Any, Optional
import structlog
from pydantic import ValidationError as PydanticValidationError

from config import get_supabase_client, settings
from exceptions import DatabaseError
from models.order_import import HeaderMappingOverride
from parsers.marketplace_profiles import get_profile

logger = structlog.get_logger(__name__)


class MarketplaceMappingService:
    """
    Read and edit user column overrides.

    The import pipeline only reads them; add/remove back the settings UI.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "settings"
        self.key = settings.marketplace_mappings_setting_key

    # ===================
    # READ OPERATIONS
    # ===================

    def get_overrides(self) -> dict[str, list[HeaderMappingOverride]]:
        """
        Get all overrides keyed by marketplace id.

        Malformed entries are dropped with a warning.
        """
        raw = self._load_raw()
        overrides: dict[str, list[HeaderMappingOverride]] = {}

        for marketplace_id, entries in raw.items():
            if not isinstance(entries, list):
                logger.warning("mapping_overrides_invalid", marketplace=marketplace_id)
                continue
            valid = []
            for entry in entries:
                try:
                    valid.append(HeaderMappingOverride.model_validate(entry))
                except PydanticValidationError:
                    logger.warning("mapping_override_skipped", marketplace=marketplace_id, entry=str(entry)[:100])
            overrides[marketplace_id] = valid

        return overrides

    def get_overrides_for(self, marketplace_id: str) -> list[HeaderMappingOverride]:
        return self.get_overrides().get(marketplace_id, [])

    # ===================
    # WRITE OPERATIONS
    # ===================

    def add_override(
        self,
        marketplace_id: str,
        override: HeaderMappingOverride,
    ) -> list[HeaderMappingOverride]:
        """
        Add or replace the override for one source column.

        Raises:
            UnknownMarketplaceError: If marketplace_id is not registered
        """
        profile = get_profile(marketplace_id)
        overrides = self.get_overrides()

        current = [o for o in overrides.get(profile.id, []) if o.source_column != override.source_column]
        current.append(override)
        overrides[profile.id] = current

        self._save(overrides)
        logger.info(
            "mapping_override_added",
            marketplace=profile.id,
            source_column=override.source_column,
            target_field=override.target_field,
        )
        return current

    def remove_override(self, marketplace_id: str, source_column: str) -> list[HeaderMappingOverride]:
        """Remove the override for one source column (no-op if absent)."""
        profile = get_profile(marketplace_id)
        overrides = self.get_overrides()

        current = [o for o in overrides.get(profile.id, []) if o.source_column != source_column]
        overrides[profile.id] = current

        self._save(overrides)
        logger.info("mapping_override_removed", marketplace=profile.id, source_column=source_column)
        return current

    # ===================
    # HELPERS
    # ===================

    def _load_raw(self) -> dict[str, Any]:
        try:
            response = (
                self.db.table(self.table)
                .select("value")
                .eq("key", self.key)
                .execute()
            )
        except Exception as e:
            logger.error("mapping_overrides_load_failed", error=str(e))
            raise DatabaseError("select", str(e), {"key": self.key})

        if not response.data:
            return {}

        value = response.data[0].get("value")
        if isinstance(value, str):
            try:
                value = json.loads(value) if value.strip() else {}
            except json.JSONDecodeError:
                logger.warning("mapping_overrides_not_json", key=self.key)
                return {}

        return value if isinstance(value, dict) else {}

    def _save(self, overrides: dict[str, list[HeaderMappingOverride]]) -> None:
        document = {
            marketplace_id: [o.model_dump(by_alias=True) for o in entries]
            for marketplace_id, entries in overrides.items()
        }
        try:
            (
                self.db.table(self.table)
                .upsert({"key": self.key, "value": json.dumps(document)}, on_conflict="key")
                .execute()
            )
        except Exception as e:
            logger.error("mapping_overrides_save_failed", error=str(e))
            raise DatabaseError("upsert", str(e), {"key": self.key})


_service: Optional[MarketplaceMappingService] = None


def get_marketplace_mapping_service() -> MarketplaceMappingService:
    """Get or create MarketplaceMappingService instance."""
    global _service
    if _service is None:
        _service = MarketplaceMappingService()
    return _service
