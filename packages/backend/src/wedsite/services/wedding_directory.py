"""Wedding directory — read side of the tenant registry.

Slug → wedding resolution goes through the wedding_slugs index (one
primary-key lookup) and then the wedding record. The index and the
record are written in the same transaction by WeddingService.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wedsite.db.errors import translate_db_errors
from wedsite.db.models import Wedding, WeddingSlug


class WeddingStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


def normalize_slug(slug: str) -> str:
    return slug.strip().lower()


class WeddingDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_slug(self, slug: str) -> Optional[Wedding]:
        """Wedding for a public slug, or None."""
        async with translate_db_errors("resolve_slug"):
            entry = await self.db.get(WeddingSlug, normalize_slug(slug))
            if entry is None:
                return None
            return await self.db.get(Wedding, entry.wedding_id)

    async def get_wedding(self, wedding_id: str) -> Optional[Wedding]:
        async with translate_db_errors("get_wedding"):
            return await self.db.get(Wedding, wedding_id, populate_existing=True)

    async def list_weddings(
        self,
        *,
        status: Optional[str] = None,
        wedding_ids: Optional[list[str]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Wedding]:
        """Weddings, newest first. wedding_ids restricts to a membership set."""
        q = select(Wedding)
        if status:
            q = q.where(Wedding.status == status)
        if wedding_ids is not None:
            if not wedding_ids:
                return []
            q = q.where(Wedding.wedding_id.in_(wedding_ids))
        q = q.order_by(Wedding.created_at.desc()).limit(limit).offset(offset)

        async with translate_db_errors("list_weddings"):
            result = await self.db.execute(q)
            return list(result.scalars().all())
