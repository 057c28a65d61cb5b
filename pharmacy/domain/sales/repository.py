from typing import Optional, List, Tuple
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from pharmacy.domain.sales.models import Sale


class SaleRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def add(self, sale: Sale) -> Sale:
        self.db.add(sale)
        return sale

    async def get(self, sale_id: str) -> Optional[Sale]:
        result = await self.db.execute(select(Sale).where(Sale.id == sale_id))
        return result.scalar_one_or_none()

    async def get_fresh(self, sale_id: str) -> Optional[Sale]:
        result = await self.db.execute(
            select(Sale).where(Sale.id == sale_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        payment_status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Sale], int]:
        query = select(Sale)
        if payment_status:
            query = query.where(Sale.payment_status == payment_status)
        if start:
            query = query.where(Sale.created_at >= start)
        if end:
            query = query.where(Sale.created_at <= end)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(query.order_by(Sale.created_at.desc()).offset(skip).limit(limit))
        return list(result.scalars().all()), total or 0

    async def list_by_customer(self, phone: str) -> List[Sale]:
        result = await self.db.execute(
            select(Sale).where(Sale.customer_phone == phone).order_by(Sale.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Sale]:
        result = await self.db.execute(
            select(Sale)
            .where(Sale.created_at >= start, Sale.created_at <= end)
            .order_by(Sale.created_at.desc())
        )
        return list(result.scalars().all())
