"""
Sales Service Layer

Point-of-sale checkout and its reversal. A checkout decrements every
referenced medicine and records the sale in one transaction; deleting a
sale puts the stock back.
"""

from typing import Optional, List, Dict, Any
from collections import OrderedDict
from datetime import date, datetime
import math

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import NotFoundError, ValidationError
from pharmacy.domain.inventory.repository import MedicineRepository
from pharmacy.domain.inventory.stock import (
    take_stock, return_stock, run_stock_transaction, validate_quantity
)
from pharmacy.domain.sales.models import Sale, SaleItem, PaymentMethod, PaymentStatus
from pharmacy.domain.sales.repository import SaleRepository

UPDATABLE_FIELDS = {"payment_status", "notes"}


def _money(value: float) -> float:
    return round(float(value), 2)


def _non_negative(value, field: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number", details={"field": field, "value": value})
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", details={"field": field, "value": value})
    return float(value)


def _choice(value: Optional[str], enum_cls, default, field: str) -> str:
    if value is None:
        return default.value
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(f"Invalid {field}", details={"field": field, "value": value})


class SaleService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = SaleRepository(db)
        self.medicines = MedicineRepository(db)

    @staticmethod
    def _validate_lines(items: Any) -> List[Dict[str, Any]]:
        if not isinstance(items, list) or not items:
            raise ValidationError("At least one item is required")

        lines = []
        for index, item in enumerate(items):
            medicine_id = item.get("medicine")
            if not medicine_id:
                raise ValidationError("Valid medicine ID is required", details={"line": index})
            quantity = validate_quantity(item.get("quantity"))
            price = _non_negative(item.get("price"), "price")
            lines.append({
                "medicine": medicine_id,
                "quantity": quantity,
                "price": price,
                "total": _money(quantity * price),
            })
        return lines

    async def create_sale(self, sale_in: Dict[str, Any], today: Optional[date] = None) -> Sale:
        """Check out a basket. Either every line is taken from stock and the
        sale is stored, or nothing changes."""
        lines = self._validate_lines(sale_in.get("items"))

        customer = sale_in.get("customer") or {}
        if not customer.get("name"):
            raise ValidationError("Customer name is required")

        discount = _non_negative(sale_in.get("discount"), "discount")
        tax = _non_negative(sale_in.get("tax"), "tax")
        subtotal = _money(sum(line["total"] for line in lines))
        total = _money(subtotal - discount + tax)
        if total < 0:
            raise ValidationError("Discount cannot exceed subtotal plus tax",
                                  details={"subtotal": subtotal, "discount": discount, "tax": tax})

        payment_method = _choice(sale_in.get("payment_method"), PaymentMethod, PaymentMethod.CASH, "payment method")
        payment_status = _choice(sale_in.get("payment_status"), PaymentStatus, PaymentStatus.COMPLETED, "payment status")

        # Several lines may draw on the same batch
        requested: Dict[str, int] = OrderedDict()
        for line in lines:
            requested[line["medicine"]] = requested.get(line["medicine"], 0) + line["quantity"]

        async def work() -> Sale:
            medicines = await self.medicines.get_many_fresh(requested.keys())
            missing = [mid for mid in requested if mid not in medicines]
            if missing:
                raise NotFoundError("One or more medicines not found", details={"medicine_ids": missing})

            for medicine_id, quantity in requested.items():
                take_stock(medicines[medicine_id], quantity, today)
            await self.db.flush()

            sale = Sale(
                customer_name=customer["name"],
                customer_phone=customer.get("phone"),
                customer_email=customer.get("email"),
                customer_address=customer.get("address"),
                subtotal=subtotal,
                discount=discount,
                tax=tax,
                total=total,
                payment_method=payment_method,
                payment_status=payment_status,
                notes=sale_in.get("notes"),
                items=[
                    SaleItem(
                        position=position,
                        medicine_id=line["medicine"],
                        medicine_name=medicines[line["medicine"]].name,
                        batch=medicines[line["medicine"]].batch,
                        quantity=line["quantity"],
                        price=line["price"],
                        total=line["total"],
                    )
                    for position, line in enumerate(lines)
                ],
            )
            self.repo.add(sale)
            await self.db.flush()
            return sale

        sale = await run_stock_transaction(self.db, work, "sale checkout")
        logger.info(f"Sale {sale.id} completed: {sale.total_items} unit(s), total {sale.total}")
        return sale

    async def delete_sale(self, sale_id: str, today: Optional[date] = None) -> None:
        """Remove a sale and restock its lines; lines whose medicine is gone are skipped"""

        async def work() -> int:
            sale = await self.repo.get_fresh(sale_id)
            if not sale:
                raise NotFoundError("Sale not found", details={"sale_id": sale_id})

            medicines = await self.medicines.get_many_fresh(item.medicine_id for item in sale.items)
            restored = 0
            for item in sale.items:
                medicine = medicines.get(item.medicine_id)
                if medicine is None:
                    logger.warning(f"Sale {sale_id}: medicine {item.medicine_id} no longer exists, not restocked")
                    continue
                return_stock(medicine, item.quantity, today)
                restored += item.quantity
            await self.db.flush()

            await self.db.delete(sale)
            await self.db.flush()
            return restored

        restored = await run_stock_transaction(self.db, work, "sale reversal")
        logger.info(f"Sale {sale_id} deleted, {restored} unit(s) returned to stock")

    async def get_sale(self, sale_id: str) -> Sale:
        sale = await self.repo.get(sale_id)
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        return sale

    async def update_sale(self, sale_id: str, sale_in: Dict[str, Any]) -> Sale:
        sale = await self.get_sale(sale_id)
        data = {k: v for k, v in sale_in.items() if k in UPDATABLE_FIELDS and v is not None}
        if "payment_status" in data:
            data["payment_status"] = _choice(data["payment_status"], PaymentStatus,
                                             PaymentStatus.COMPLETED, "payment status")
        for field, value in data.items():
            setattr(sale, field, value)
        await self.db.commit()
        return sale

    async def list_sales(
        self,
        payment_status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        if payment_status is not None:
            payment_status = _choice(payment_status, PaymentStatus, PaymentStatus.COMPLETED, "payment status")
        items, total = await self.repo.list(
            payment_status=payment_status, start=start, end=end,
            skip=(page - 1) * limit, limit=limit,
        )
        return {
            "items": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
        }

    async def list_by_customer(self, phone: str) -> List[Sale]:
        return await self.repo.list_by_customer(phone)

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Sale]:
        if start > end:
            raise ValidationError("Start date must be before end date")
        return await self.repo.list_by_date_range(start, end)
