from typing import Optional, List, Tuple
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from pharmacy.domain.prescriptions.models import Prescription, PrescriptionStatus

OPEN_STATUSES = (PrescriptionStatus.PENDING.value, PrescriptionStatus.PARTIALLY_DISPENSED.value)


class PrescriptionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def add(self, prescription: Prescription) -> Prescription:
        self.db.add(prescription)
        return prescription

    async def get(self, prescription_id: str) -> Optional[Prescription]:
        result = await self.db.execute(select(Prescription).where(Prescription.id == prescription_id))
        return result.scalar_one_or_none()

    async def get_fresh(self, prescription_id: str) -> Optional[Prescription]:
        result = await self.db.execute(
            select(Prescription)
            .where(Prescription.id == prescription_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def last_number(self) -> Optional[str]:
        return await self.db.scalar(select(func.max(Prescription.prescription_number)))

    async def list(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        customer: Optional[str] = None,
        doctor: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Prescription], int]:
        query = select(Prescription)
        if status:
            query = query.where(Prescription.status == status)
        if priority:
            query = query.where(Prescription.priority == priority)
        if customer:
            pattern = f"%{customer}%"
            query = query.where(or_(
                Prescription.customer_name.ilike(pattern),
                Prescription.customer_phone.ilike(pattern),
            ))
        if doctor:
            query = query.where(Prescription.doctor_name.ilike(f"%{doctor}%"))

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(Prescription.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def list_by_status(self, status: str) -> List[Prescription]:
        result = await self.db.execute(
            select(Prescription).where(Prescription.status == status).order_by(Prescription.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_by_customer(self, phone: str) -> List[Prescription]:
        result = await self.db.execute(
            select(Prescription)
            .where(Prescription.customer_phone == phone)
            .order_by(Prescription.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_expiring(self, today: date, until: date) -> List[Prescription]:
        result = await self.db.execute(
            select(Prescription)
            .where(
                Prescription.valid_until > today,
                Prescription.valid_until <= until,
                Prescription.status.in_(OPEN_STATUSES),
            )
            .order_by(Prescription.valid_until)
        )
        return list(result.scalars().all())

    async def delete(self, prescription: Prescription) -> None:
        await self.db.delete(prescription)
        await self.db.commit()
