"""Read access to import profiles."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.models.import_profile import ImportProfile
from okazje.schemas.profile import ImportProfileSchema


class ImportProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, profile_id: str) -> Optional[ImportProfile]:
        return await self.db.get(ImportProfile, profile_id)

    async def list_enabled_profiles(self) -> List[ImportProfile]:
        result = await self.db.execute(
            select(ImportProfile)
            .where(ImportProfile.enabled.is_(True))
            .order_by(ImportProfile.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    def to_schema(profile: ImportProfile) -> ImportProfileSchema:
        """Parse a profile row, validating its JSON filters and mapping.

        Raises:
            pydantic.ValidationError: If the stored profile is malformed
        """
        return ImportProfileSchema.model_validate(
            {
                "id": profile.id,
                "vendor_id": profile.vendor_id,
                "name": profile.name,
                "enabled": profile.enabled,
                "account_name": profile.account_name,
                "filters": profile.filters or {},
                "mapping": profile.mapping or {},
                "max_items_per_run": profile.max_items_per_run,
                "deduplication_strategy": profile.deduplication_strategy,
                "created_by": profile.created_by,
            }
        )
