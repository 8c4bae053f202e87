"""Partner lookups shared by the routers."""

import uuid

from fastapi import HTTPException, status
from services.partner_service.models import Partner
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_partner_or_404(
    db: AsyncSession, partner_id: uuid.UUID, *, lock: bool = False
) -> Partner:
    query = select(Partner).where(Partner.id == partner_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    partner = result.scalar_one_or_none()
    if partner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Partner not found"
        )
    return partner
