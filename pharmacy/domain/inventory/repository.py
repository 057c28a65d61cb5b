"""
Inventory Repository Layer

Data access for medicines, categories and suppliers.
"""

from typing import Optional, List, Tuple, Iterable, Dict
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete

from pharmacy.domain.inventory.models import Medicine, Category, Supplier


class MedicineRepository:
    """Repository for medicine batches"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, medicine_id: str) -> Optional[Medicine]:
        result = await self.db.execute(select(Medicine).where(Medicine.id == medicine_id))
        return result.scalar_one_or_none()

    async def get_fresh(self, medicine_id: str) -> Optional[Medicine]:
        """Read the current row, overwriting whatever the session holds"""
        result = await self.db.execute(
            select(Medicine)
            .where(Medicine.id == medicine_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_many_fresh(self, medicine_ids: Iterable[str]) -> Dict[str, Medicine]:
        ids = list(set(medicine_ids))
        if not ids:
            return {}
        result = await self.db.execute(
            select(Medicine)
            .where(Medicine.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return {m.id: m for m in result.scalars().all()}

    async def get_by_barcode(self, barcode: str) -> Optional[Medicine]:
        result = await self.db.execute(select(Medicine).where(Medicine.barcode == barcode))
        return result.scalar_one_or_none()

    async def list(
        self,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        status: Optional[str] = None,
        today: Optional[date] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Medicine], int]:
        query = select(Medicine)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Medicine.name.ilike(pattern),
                Medicine.batch.ilike(pattern),
                Medicine.description.ilike(pattern),
            ))
        if category_id:
            query = query.where(Medicine.category_id == category_id)
        if supplier_id:
            query = query.where(Medicine.supplier_id == supplier_id)
        if status:
            query = query.where(Medicine.status_as_of(today) == status)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(Medicine.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def list_by_status(self, status: str, today: Optional[date] = None) -> List[Medicine]:
        result = await self.db.execute(
            select(Medicine).where(Medicine.status_as_of(today) == status).order_by(Medicine.name)
        )
        return list(result.scalars().all())

    async def list_expiring(self, today: date, until: date) -> List[Medicine]:
        result = await self.db.execute(
            select(Medicine)
            .where(Medicine.expiry_date > today, Medicine.expiry_date <= until, Medicine.quantity > 0)
            .order_by(Medicine.expiry_date)
        )
        return list(result.scalars().all())

    async def count_by_category(self, category_id: str) -> int:
        return await self.db.scalar(
            select(func.count(Medicine.id)).where(Medicine.category_id == category_id)
        ) or 0

    async def count_by_supplier(self, supplier_id: str) -> int:
        return await self.db.scalar(
            select(func.count(Medicine.id)).where(Medicine.supplier_id == supplier_id)
        ) or 0

    async def delete(self, medicine: Medicine) -> None:
        await self.db.delete(medicine)
        await self.db.commit()


class CategoryRepository:
    """Repository for medicine categories"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Category:
        category = Category(**data)
        self.db.add(category)
        await self.db.commit()
        return category

    async def get(self, category_id: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(Category.id == category_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(func.lower(Category.name) == name.lower()))
        return result.scalar_one_or_none()

    async def list(self, active_only: bool = False) -> List[Category]:
        query = select(Category)
        if active_only:
            query = query.where(Category.active == True)  # noqa: E712
        result = await self.db.execute(query.order_by(Category.sort_order, Category.name))
        return list(result.scalars().all())

    async def delete_with_children(self, category: Category) -> None:
        await self.db.execute(delete(Category).where(Category.parent_id == category.id))
        await self.db.delete(category)
        await self.db.commit()


class SupplierRepository:
    """Repository for suppliers"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Supplier:
        supplier = Supplier(**data)
        self.db.add(supplier)
        await self.db.commit()
        return supplier

    async def get(self, supplier_id: str) -> Optional[Supplier]:
        result = await self.db.execute(select(Supplier).where(Supplier.id == supplier_id))
        return result.scalar_one_or_none()

    async def list(self, active_only: bool = False) -> List[Supplier]:
        query = select(Supplier)
        if active_only:
            query = query.where(Supplier.active == True)  # noqa: E712
        result = await self.db.execute(query.order_by(Supplier.name))
        return list(result.scalars().all())

    async def delete(self, supplier: Supplier) -> None:
        await self.db.delete(supplier)
        await self.db.commit()
