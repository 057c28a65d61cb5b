"""
Inventory Service Layer

Medicine intake, lookup and maintenance, plus category and supplier
master data. Status is always derived here, never taken from the caller.
"""

from typing import Optional, List, Dict, Any
from datetime import date, timedelta
import math

from loguru import logger
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import NotFoundError, ConflictError, ValidationError
from pharmacy.domain.inventory.models import Medicine, Category, Supplier
from pharmacy.domain.inventory.repository import (
    MedicineRepository, CategoryRepository, SupplierRepository
)
from pharmacy.domain.inventory.status import MedicineStatus
from pharmacy.domain.inventory.stock import return_stock, run_stock_transaction, validate_quantity
from pharmacy.domain.sales.models import SaleItem
from pharmacy.domain.prescriptions.models import PrescriptionItem

READ_ONLY_FIELDS = {"id", "status", "version", "created_at", "updated_at"}


def _writable(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in READ_ONLY_FIELDS}


def _parse_status(status: str) -> str:
    try:
        return MedicineStatus(status).value
    except ValueError:
        raise ValidationError("Invalid status", details={"status": status})


class InventoryService:
    """Service layer for medicine batches"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = MedicineRepository(db)
        self.categories = CategoryRepository(db)
        self.suppliers = SupplierRepository(db)

    async def _check_references(self, data: Dict[str, Any]) -> None:
        if "category_id" in data and not await self.categories.get(data["category_id"]):
            raise NotFoundError("Category not found", details={"category_id": data["category_id"]})
        if "supplier_id" in data and not await self.suppliers.get(data["supplier_id"]):
            raise NotFoundError("Supplier not found", details={"supplier_id": data["supplier_id"]})

    @staticmethod
    def _check_values(data: Dict[str, Any], today: date, require_future_expiry: bool = True) -> None:
        if "quantity" in data:
            validate_quantity(data["quantity"], "quantity", minimum=0)
        if "par_level" in data:
            validate_quantity(data["par_level"], "par_level", minimum=0)
        for field in ("price", "mrp"):
            if field in data and data[field] is not None and data[field] < 0:
                raise ValidationError(f"{field} cannot be negative",
                                      details={"field": field, "value": data[field]})
        if require_future_expiry and "expiry_date" in data and data["expiry_date"] <= today:
            raise ValidationError("Expiry date must be in the future",
                                  details={"expiry_date": str(data["expiry_date"])})

    async def create_medicine(self, medicine_in: Dict[str, Any], today: Optional[date] = None) -> Medicine:
        today = today or date.today()
        data = _writable(medicine_in)
        for field in ("name", "category_id", "batch", "expiry_date", "quantity", "price", "mrp",
                      "supplier_id", "par_level"):
            if data.get(field) is None:
                raise ValidationError(f"{field} is required", details={"field": field})

        self._check_values(data, today)
        await self._check_references(data)
        if data.get("barcode") and await self.repo.get_by_barcode(data["barcode"]):
            raise ConflictError("Barcode already in use", details={"barcode": data["barcode"]})

        medicine = Medicine(**data)
        medicine.refresh_status(today)
        self.db.add(medicine)
        await self.db.commit()
        logger.info(f"Medicine {medicine.name} ({medicine.batch}) added with {medicine.quantity} units")
        return medicine

    async def get_medicine(self, medicine_id: str) -> Medicine:
        medicine = await self.repo.get(medicine_id)
        if not medicine:
            raise NotFoundError("Medicine not found", details={"medicine_id": medicine_id})
        return medicine

    async def list_medicines(
        self,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Page through medicines; the status filter matches the status as of ``today``"""
        if status is not None:
            status = _parse_status(status)
        items, total = await self.repo.list(
            search=search,
            category_id=category_id,
            supplier_id=supplier_id,
            status=status,
            today=today,
            skip=(page - 1) * limit,
            limit=limit,
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

    async def update_medicine(
        self, medicine_id: str, medicine_in: Dict[str, Any], today: Optional[date] = None
    ) -> Medicine:
        today = today or date.today()
        # Explicit nulls would land on NOT NULL columns
        data = {k: v for k, v in _writable(medicine_in).items() if v is not None}
        current = await self.get_medicine(medicine_id)
        # Past expiry is refused only when the date itself changes
        expiry_changed = "expiry_date" in data and data["expiry_date"] != current.expiry_date
        self._check_values(data, today, require_future_expiry=expiry_changed)
        await self._check_references(data)
        if data.get("barcode"):
            other = await self.repo.get_by_barcode(data["barcode"])
            if other and other.id != medicine_id:
                raise ConflictError("Barcode already in use", details={"barcode": data["barcode"]})

        async def work() -> Medicine:
            medicine = await self.repo.get_fresh(medicine_id)
            if not medicine:
                raise NotFoundError("Medicine not found", details={"medicine_id": medicine_id})
            for field, value in data.items():
                setattr(medicine, field, value)
            medicine.refresh_status(today)
            await self.db.flush()
            return medicine

        return await run_stock_transaction(self.db, work, "medicine update")

    async def restock(self, medicine_id: str, quantity: int, today: Optional[date] = None) -> Medicine:
        validate_quantity(quantity)

        async def work() -> Medicine:
            medicine = await self.repo.get_fresh(medicine_id)
            if not medicine:
                raise NotFoundError("Medicine not found", details={"medicine_id": medicine_id})
            return_stock(medicine, quantity, today)
            await self.db.flush()
            return medicine

        medicine = await run_stock_transaction(self.db, work, "restock")
        logger.info(f"Restocked {medicine.name} ({medicine.batch}) by {quantity}, now {medicine.quantity}")
        return medicine

    async def delete_medicine(self, medicine_id: str) -> None:
        medicine = await self.get_medicine(medicine_id)
        sale_refs = await self.db.scalar(
            select(func.count(SaleItem.id)).where(SaleItem.medicine_id == medicine_id)
        )
        prescription_refs = await self.db.scalar(
            select(func.count(PrescriptionItem.id)).where(PrescriptionItem.medicine_id == medicine_id)
        )
        if sale_refs or prescription_refs:
            raise ConflictError(
                "Cannot delete a medicine referenced by sales or prescriptions",
                details={"sales": sale_refs, "prescriptions": prescription_refs},
            )
        await self.repo.delete(medicine)
        logger.info(f"Medicine {medicine_id} deleted")

    async def list_by_status(self, status: str, today: Optional[date] = None) -> List[Medicine]:
        return await self.repo.list_by_status(_parse_status(status), today)

    async def list_expiring(self, days: int = 30, today: Optional[date] = None) -> List[Medicine]:
        validate_quantity(days, "days")
        today = today or date.today()
        return await self.repo.list_expiring(today, today + timedelta(days=days))

    async def refresh_statuses(self, today: Optional[date] = None) -> int:
        """Re-project every medicine's status, e.g. as days pass; returns rows changed"""
        today = today or date.today()

        async def work() -> int:
            result = await self.db.execute(
                select(Medicine).execution_options(populate_existing=True)
            )
            changed = 0
            for medicine in result.scalars().all():
                if medicine.refresh_status(today):
                    changed += 1
            await self.db.flush()
            return changed

        changed = await run_stock_transaction(self.db, work, "status refresh")
        logger.info(f"Status refresh for {today}: {changed} medicine(s) changed")
        return changed


class CategoryService:
    """Service layer for categories"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CategoryRepository(db)
        self.medicines = MedicineRepository(db)

    async def create_category(self, category_in: Dict[str, Any]) -> Category:
        if await self.repo.get_by_name(category_in["name"]):
            raise ConflictError("Category already exists", details={"name": category_in["name"]})
        if category_in.get("parent_id") and not await self.repo.get(category_in["parent_id"]):
            raise NotFoundError("Parent category not found")
        return await self.repo.create(_writable(category_in))

    async def get_category(self, category_id: str) -> Category:
        category = await self.repo.get(category_id)
        if not category:
            raise NotFoundError("Category not found", details={"category_id": category_id})
        return category

    async def list_categories(self, active_only: bool = False) -> List[Category]:
        return await self.repo.list(active_only=active_only)

    async def update_category(self, category_id: str, category_in: Dict[str, Any]) -> Category:
        category = await self.get_category(category_id)
        name = category_in.get("name")
        if name:
            existing = await self.repo.get_by_name(name)
            if existing and existing.id != category_id:
                raise ConflictError("Category already exists", details={"name": name})
        if category_in.get("parent_id") == category_id:
            raise ValidationError("A category cannot be its own parent")
        for field, value in _writable(category_in).items():
            setattr(category, field, value)
        await self.db.commit()
        return category

    async def toggle_category(self, category_id: str) -> Category:
        category = await self.get_category(category_id)
        category.active = not category.active
        await self.db.commit()
        return category

    async def delete_category(self, category_id: str) -> None:
        category = await self.get_category(category_id)
        in_use = await self.medicines.count_by_category(category_id)
        if in_use:
            raise ConflictError(
                "Cannot delete category that has medicines. Please reassign medicines first.",
                details={"medicines": in_use},
            )
        await self.repo.delete_with_children(category)


class SupplierService:
    """Service layer for suppliers"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = SupplierRepository(db)
        self.medicines = MedicineRepository(db)

    async def create_supplier(self, supplier_in: Dict[str, Any]) -> Supplier:
        return await self.repo.create(_writable(supplier_in))

    async def get_supplier(self, supplier_id: str) -> Supplier:
        supplier = await self.repo.get(supplier_id)
        if not supplier:
            raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
        return supplier

    async def list_suppliers(self, active_only: bool = False) -> List[Supplier]:
        return await self.repo.list(active_only=active_only)

    async def update_supplier(self, supplier_id: str, supplier_in: Dict[str, Any]) -> Supplier:
        supplier = await self.get_supplier(supplier_id)
        for field, value in _writable(supplier_in).items():
            setattr(supplier, field, value)
        await self.db.commit()
        return supplier

    async def toggle_supplier(self, supplier_id: str) -> Supplier:
        supplier = await self.get_supplier(supplier_id)
        supplier.active = not supplier.active
        await self.db.commit()
        return supplier

    async def delete_supplier(self, supplier_id: str) -> None:
        supplier = await self.get_supplier(supplier_id)
        in_use = await self.medicines.count_by_supplier(supplier_id)
        if in_use:
            raise ConflictError(
                "Cannot delete supplier that has medicines. Please reassign medicines first.",
                details={"medicines": in_use},
            )
        await self.repo.delete(supplier)
