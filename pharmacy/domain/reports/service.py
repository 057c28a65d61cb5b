"""
Reports Service Layer

Period and catalogue reports returned as plain JSON structures: sales and
prescriptions over a date range, and inventory and suppliers as of today.
Medicine status counts use the status as of ``today``.
"""

from typing import Dict, Any, List, Optional
from datetime import date, datetime

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import ValidationError
from pharmacy.domain.inventory.models import Medicine, Category, Supplier
from pharmacy.domain.inventory.status import MedicineStatus
from pharmacy.domain.sales.models import Sale, SaleItem
from pharmacy.domain.prescriptions.models import Prescription, PrescriptionItem, PrescriptionStatus

PRESCRIPTION_STATUSES = [s.value for s in PrescriptionStatus]


def _check_range(start: datetime, end: datetime) -> None:
    if start > end:
        raise ValidationError(
            "Start date must be before end date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )


def _day(value) -> str:
    # func.date gives a string on SQLite and a date on PostgreSQL
    return value.isoformat() if isinstance(value, date) else str(value)


def _status_columns(status_column) -> List:
    return [
        func.sum(case((status_column == s, 1), else_=0)).label(s.replace("-", "_"))
        for s in PRESCRIPTION_STATUSES
    ]


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def sales_report(self, start: datetime, end: datetime) -> Dict[str, Any]:
        _check_range(start, end)
        in_range = (Sale.created_at >= start, Sale.created_at <= end)

        count, revenue = (await self.db.execute(
            select(func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0)).where(*in_range)
        )).one()
        items = await self.db.scalar(
            select(func.coalesce(func.sum(SaleItem.quantity), 0))
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(*in_range)
        )

        methods = await self.db.execute(
            select(Sale.payment_method, func.count(Sale.id))
            .where(*in_range)
            .group_by(Sale.payment_method)
        )

        day = func.date(Sale.created_at).label("day")
        line_items = (
            select(SaleItem.sale_id, func.sum(SaleItem.quantity).label("items"))
            .group_by(SaleItem.sale_id)
            .subquery()
        )
        daily = await self.db.execute(
            select(
                day,
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.total), 0),
                func.coalesce(func.sum(line_items.c["items"]), 0),
            )
            .select_from(Sale)
            .outerjoin(line_items, line_items.c.sale_id == Sale.id)
            .where(*in_range)
            .group_by(day)
            .order_by(day)
        )

        line_revenue = func.sum(SaleItem.total).label("revenue")
        top = await self.db.execute(
            select(SaleItem.medicine_name, func.sum(SaleItem.quantity), line_revenue)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(*in_range)
            .group_by(SaleItem.medicine_name)
            .order_by(line_revenue.desc())
            .limit(10)
        )

        revenue = round(float(revenue), 2)
        return {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "summary": {
                "total_sales": count,
                "total_revenue": revenue,
                "total_items": int(items or 0),
                "average_order_value": round(revenue / count, 2) if count else 0.0,
            },
            "payment_methods": {method: n for method, n in methods.all()},
            "daily_sales": [
                {"date": _day(d), "sales": n, "revenue": round(float(total), 2), "items": int(qty)}
                for d, n, total, qty in daily.all()
            ],
            "top_medicines": [
                {"name": name, "quantity": int(qty), "revenue": round(float(rev), 2)}
                for name, qty, rev in top.all()
            ],
        }

    async def inventory_report(self, today: Optional[date] = None) -> Dict[str, Any]:
        status = Medicine.status_as_of(today).label("status")
        value = func.coalesce(func.sum(Medicine.quantity * Medicine.price), 0)

        status_rows = await self.db.execute(select(status, func.count(Medicine.id)).group_by(status))
        statuses = {s.value: 0 for s in MedicineStatus}
        for name, n in status_rows.all():
            statuses[name] = n

        total_value = await self.db.scalar(select(value))

        return {
            "summary": {
                "total_medicines": sum(statuses.values()),
                "total_value": round(float(total_value or 0), 2),
                "low_stock_items": statuses[MedicineStatus.LOW_STOCK.value],
                "expired_items": statuses[MedicineStatus.EXPIRED.value],
                "expiring_soon_items": statuses[MedicineStatus.EXPIRING_SOON.value],
            },
            "category_breakdown": await self._medicine_breakdown(
                Medicine.category_id, Category, "Uncategorized"
            ),
            "supplier_breakdown": await self._medicine_breakdown(
                Medicine.supplier_id, Supplier, "Unknown Supplier"
            ),
            "status_breakdown": statuses,
        }

    async def _medicine_breakdown(self, key, owner, fallback: str) -> List[Dict[str, Any]]:
        """Medicine count, quantity and value per category or supplier"""
        medicine_count = func.count(Medicine.id)
        rows = await self.db.execute(
            select(
                func.coalesce(func.max(owner.name), fallback),
                medicine_count,
                func.coalesce(func.sum(Medicine.quantity), 0),
                func.coalesce(func.sum(Medicine.quantity * Medicine.price), 0),
            )
            .select_from(Medicine)
            .outerjoin(owner, owner.id == key)
            .group_by(key)
            .order_by(medicine_count.desc())
        )
        return [
            {"name": name, "count": n, "total_quantity": int(qty), "total_value": round(float(v), 2)}
            for name, n, qty, v in rows.all()
        ]

    async def prescriptions_report(self, start: datetime, end: datetime) -> Dict[str, Any]:
        _check_range(start, end)
        in_range = (Prescription.created_at >= start, Prescription.created_at <= end)

        by_status = {s: 0 for s in PRESCRIPTION_STATUSES}
        rows = await self.db.execute(
            select(Prescription.status, func.count(Prescription.id))
            .where(*in_range)
            .group_by(Prescription.status)
        )
        for name, n in rows.all():
            by_status[name] = n

        priorities = await self.db.execute(
            select(Prescription.priority, func.count(Prescription.id))
            .where(*in_range)
            .group_by(Prescription.priority)
        )

        doctors = await self.db.execute(
            select(Prescription.doctor_name, func.count(Prescription.id), *_status_columns(Prescription.status))
            .where(*in_range)
            .group_by(Prescription.doctor_name)
            .order_by(func.count(Prescription.id).desc())
        )

        medicines = await self.db.execute(
            select(
                PrescriptionItem.medicine_name,
                func.sum(PrescriptionItem.quantity),
                func.sum(PrescriptionItem.dispensed),
                func.count(PrescriptionItem.id),
            )
            .join(Prescription, Prescription.id == PrescriptionItem.prescription_id)
            .where(*in_range)
            .group_by(PrescriptionItem.medicine_name)
            .order_by(func.sum(PrescriptionItem.quantity).desc())
        )

        day = func.date(Prescription.created_at).label("day")
        daily = await self.db.execute(
            select(day, func.count(Prescription.id), *_status_columns(Prescription.status))
            .where(*in_range)
            .group_by(day)
            .order_by(day)
        )

        def per_status(row, offset: int) -> Dict[str, int]:
            return {
                s.replace("-", "_"): int(row[offset + i] or 0)
                for i, s in enumerate(PRESCRIPTION_STATUSES)
            }

        return {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "summary": {
                "total_prescriptions": sum(by_status.values()),
                "pending_prescriptions": by_status[PrescriptionStatus.PENDING.value],
                "partially_dispensed_prescriptions": by_status[PrescriptionStatus.PARTIALLY_DISPENSED.value],
                "dispensed_prescriptions": by_status[PrescriptionStatus.DISPENSED.value],
                "cancelled_prescriptions": by_status[PrescriptionStatus.CANCELLED.value],
            },
            "priority_breakdown": {priority: n for priority, n in priorities.all()},
            "doctor_breakdown": [
                {"name": row[0], "count": row[1], **per_status(row, 2)} for row in doctors.all()
            ],
            "medicine_breakdown": [
                {"name": name, "prescribed": int(prescribed), "dispensed": int(dispensed), "count": n}
                for name, prescribed, dispensed, n in medicines.all()
            ],
            "daily_breakdown": [
                {"date": _day(row[0]), "total": row[1], **per_status(row, 2)} for row in daily.all()
            ],
        }

    async def suppliers_report(self, today: Optional[date] = None) -> Dict[str, Any]:
        status = Medicine.status_as_of(today)
        rows = await self.db.execute(
            select(
                Supplier.id,
                Supplier.name,
                Supplier.active,
                func.count(Medicine.id),
                func.coalesce(func.sum(Medicine.quantity), 0),
                func.coalesce(func.sum(Medicine.quantity * Medicine.price), 0),
                func.sum(case((status == MedicineStatus.LOW_STOCK.value, 1), else_=0)),
                func.sum(case((status == MedicineStatus.EXPIRED.value, 1), else_=0)),
            )
            .select_from(Supplier)
            .outerjoin(Medicine, Medicine.supplier_id == Supplier.id)
            .group_by(Supplier.id, Supplier.name, Supplier.active)
            .order_by(Supplier.name)
        )

        suppliers = [
            {
                "id": supplier_id,
                "name": name,
                "active": active,
                "statistics": {
                    "total_medicines": n,
                    "total_quantity": int(qty),
                    "total_value": round(float(v), 2),
                    "low_stock_medicines": int(low or 0),
                    "expired_medicines": int(expired or 0),
                },
            }
            for supplier_id, name, active, n, qty, v, low, expired in rows.all()
        ]
        return {
            "summary": {
                "total_suppliers": len(suppliers),
                "active_suppliers": sum(1 for s in suppliers if s["active"]),
                "total_medicines": sum(s["statistics"]["total_medicines"] for s in suppliers),
                "total_value": round(sum(s["statistics"]["total_value"] for s in suppliers), 2),
            },
            "suppliers": suppliers,
        }
