"""
Dashboard Service Layer

Read-only aggregations over medicines, sales and prescriptions. Medicine
counts group on the status as of today through the SQL form of the status
rule, so they agree with what the medicine endpoints return.
"""

from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta, time

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.config import settings
from pharmacy.domain.inventory.models import Medicine, Category, Supplier
from pharmacy.domain.inventory.status import MedicineStatus
from pharmacy.domain.sales.models import Sale, SaleItem
from pharmacy.domain.prescriptions.models import Prescription
from pharmacy.domain.prescriptions.repository import OPEN_STATUSES


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _status_counts(self) -> Dict[str, int]:
        derived = Medicine.status_as_of().label("status")
        result = await self.db.execute(
            select(derived, func.count(Medicine.id)).group_by(derived)
        )
        counts = {status.value: 0 for status in MedicineStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    async def _sales_since(self, since: datetime) -> Dict[str, Any]:
        row = (await self.db.execute(
            select(func.coalesce(func.sum(Sale.total), 0), func.count(Sale.id))
            .where(Sale.created_at >= since)
        )).one()
        return {"amount": round(float(row[0]), 2), "count": row[1]}

    async def _open_prescriptions(self) -> int:
        return await self.db.scalar(
            select(func.count(Prescription.id)).where(Prescription.status.in_(OPEN_STATUSES))
        ) or 0

    async def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        today = datetime.combine(now.date(), time.min)

        counts = await self._status_counts()
        total_medicines = sum(counts.values())
        total_suppliers = await self.db.scalar(select(func.count(Supplier.id))) or 0
        active_suppliers = await self.db.scalar(
            select(func.count(Supplier.id)).where(Supplier.active == True)  # noqa: E712
        ) or 0
        active_categories = await self.db.scalar(
            select(func.count(Category.id)).where(Category.active == True)  # noqa: E712
        ) or 0
        customers = await self.db.scalar(
            select(func.count(func.distinct(Sale.customer_phone))).where(Sale.customer_phone.isnot(None))
        ) or 0

        return {
            "medicines": {
                "total": total_medicines,
                "in_stock": counts[MedicineStatus.IN_STOCK.value],
                "low_stock": counts[MedicineStatus.LOW_STOCK.value],
                "expiring_soon": counts[MedicineStatus.EXPIRING_SOON.value],
                "expired": counts[MedicineStatus.EXPIRED.value],
            },
            "suppliers": {
                "total": total_suppliers,
                "active": active_suppliers,
                "inactive": total_suppliers - active_suppliers,
            },
            "categories": {"total": active_categories},
            "prescriptions": {"pending": await self._open_prescriptions()},
            "sales": {
                "daily": await self._sales_since(today),
                "weekly": await self._sales_since(today - timedelta(days=7)),
                "monthly": await self._sales_since(today - timedelta(days=30)),
                "total": {"count": await self.db.scalar(select(func.count(Sale.id))) or 0},
            },
            "customers": {"total": customers},
        }

    async def alerts(self) -> List[Dict[str, Any]]:
        counts = await self._status_counts()
        open_prescriptions = await self._open_prescriptions()

        candidates = [
            {
                "id": "expired-medicines",
                "type": "expiry",
                "title": "Expired Medicines",
                "message": f"{counts[MedicineStatus.EXPIRED.value]} medicines have expired or run out and need attention",
                "count": counts[MedicineStatus.EXPIRED.value],
                "priority": "high",
                "action_url": "/inventory?filter=expired",
            },
            {
                "id": "expiring-soon",
                "type": "expiry",
                "title": "Medicines Expiring Soon",
                "message": f"{counts[MedicineStatus.EXPIRING_SOON.value]} medicines will expire within {settings.EXPIRY_WARNING_DAYS} days",
                "count": counts[MedicineStatus.EXPIRING_SOON.value],
                "priority": "medium",
                "action_url": "/inventory?filter=expiring-soon",
            },
            {
                "id": "low-stock",
                "type": "low-stock",
                "title": "Low Stock Items",
                "message": f"{counts[MedicineStatus.LOW_STOCK.value]} medicines are at or below their par level",
                "count": counts[MedicineStatus.LOW_STOCK.value],
                "priority": "medium",
                "action_url": "/inventory?filter=low-stock",
            },
            {
                "id": "pending-prescriptions",
                "type": "prescription",
                "title": "Pending Prescriptions",
                "message": f"{open_prescriptions} prescriptions are waiting to be dispensed",
                "count": open_prescriptions,
                "priority": "low",
                "action_url": "/prescriptions",
            },
        ]
        return [alert for alert in candidates if alert["count"] > 0]

    async def top_medicines(self, limit: int = 5, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        since = (now or datetime.utcnow()) - timedelta(days=days)
        revenue = func.sum(SaleItem.total).label("total_revenue")
        result = await self.db.execute(
            select(
                SaleItem.medicine_id,
                func.max(SaleItem.medicine_name).label("name"),
                func.sum(SaleItem.quantity).label("total_quantity"),
                revenue,
                func.count(SaleItem.id).label("sales_count"),
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(Sale.created_at >= since)
            .group_by(SaleItem.medicine_id)
            .order_by(revenue.desc())
            .limit(limit)
        )
        return [
            {
                "medicine_id": row.medicine_id,
                "name": row.name,
                "total_quantity": int(row.total_quantity or 0),
                "total_revenue": round(float(row.total_revenue or 0), 2),
                "sales_count": row.sales_count,
            }
            for row in result.all()
        ]

    async def inventory_distribution(self) -> List[Dict[str, Any]]:
        medicine_count = func.count(Medicine.id).label("medicine_count")
        result = await self.db.execute(
            select(
                Medicine.category_id,
                func.max(Category.name).label("name"),
                medicine_count,
                func.coalesce(func.sum(Medicine.quantity), 0).label("total_quantity"),
                func.coalesce(func.sum(Medicine.quantity * Medicine.price), 0).label("total_value"),
            )
            .outerjoin(Category, Category.id == Medicine.category_id)
            .group_by(Medicine.category_id)
            .order_by(medicine_count.desc())
        )
        return [
            {
                "category_id": row.category_id,
                "name": row.name,
                "count": row.medicine_count,
                "total_quantity": int(row.total_quantity),
                "total_value": round(float(row.total_value), 2),
            }
            for row in result.all()
        ]

    async def sales_chart(self, days: int = 7, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or datetime.utcnow()
        chart = []
        for offset in range(days - 1, -1, -1):
            start = datetime.combine((now - timedelta(days=offset)).date(), time.min)
            end = start + timedelta(days=1)
            row = (await self.db.execute(
                select(func.coalesce(func.sum(Sale.total), 0), func.count(Sale.id))
                .where(Sale.created_at >= start, Sale.created_at < end)
            )).one()
            chart.append({
                "date": start.date().isoformat(),
                "day": start.strftime("%a"),
                "sales": round(float(row[0]), 2),
                "transactions": row[1],
            })
        return chart
