"""
Inventory API Routes

Medicine batches, categories and suppliers.
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from pharmacy.infrastructure.database import get_db
from pharmacy.domain.inventory.service import InventoryService, CategoryService, SupplierService
from pharmacy.domain.inventory.status import MedicineStatus
from pharmacy.api.v1.inventory.schemas import (
    CategoryCreate, CategoryUpdate, CategoryResponse,
    SupplierCreate, SupplierUpdate, SupplierResponse,
    MedicineCreate, MedicineUpdate, MedicineResponse, MedicineList,
    RestockRequest, StatusRefreshResponse
)

router = APIRouter(tags=["Inventory"])


# ==================== Medicine Endpoints ====================

@router.post("/medicines", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
async def create_medicine(medicine_in: MedicineCreate, db: AsyncSession = Depends(get_db)):
    """Add a medicine batch; its status is derived, never supplied"""
    service = InventoryService(db)
    medicine = await service.create_medicine(medicine_in.model_dump())
    return MedicineResponse.model_validate(medicine)


@router.get("/medicines", response_model=MedicineList)
async def list_medicines(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category_id: Optional[str] = Query(None, alias="category"),
    supplier_id: Optional[str] = Query(None, alias="supplier"),
    status_filter: Optional[MedicineStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db)
):
    """List medicines with search, filters and pagination"""
    service = InventoryService(db)
    result = await service.list_medicines(
        search=search,
        category_id=category_id,
        supplier_id=supplier_id,
        status=status_filter.value if status_filter else None,
        page=page,
        limit=limit,
    )
    return MedicineList(
        items=[MedicineResponse.model_validate(m) for m in result["items"]],
        pagination=result["pagination"],
    )


@router.get("/medicines/expiring", response_model=List[MedicineResponse])
async def list_expiring_medicines(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db)
):
    """Medicines in stock that expire within ``days``"""
    service = InventoryService(db)
    medicines = await service.list_expiring(days)
    return [MedicineResponse.model_validate(m) for m in medicines]


@router.post("/medicines/refresh-status", response_model=StatusRefreshResponse)
async def refresh_medicine_statuses(db: AsyncSession = Depends(get_db)):
    service = InventoryService(db)
    return StatusRefreshResponse(updated=await service.refresh_statuses())


@router.get("/medicines/status/{medicine_status}", response_model=List[MedicineResponse])
async def list_medicines_by_status(medicine_status: str, db: AsyncSession = Depends(get_db)):
    service = InventoryService(db)
    medicines = await service.list_by_status(medicine_status)
    return [MedicineResponse.model_validate(m) for m in medicines]


@router.get("/medicines/{medicine_id}", response_model=MedicineResponse)
async def get_medicine(medicine_id: str, db: AsyncSession = Depends(get_db)):
    service = InventoryService(db)
    return MedicineResponse.model_validate(await service.get_medicine(medicine_id))


@router.put("/medicines/{medicine_id}", response_model=MedicineResponse)
async def update_medicine(medicine_id: str, medicine_in: MedicineUpdate, db: AsyncSession = Depends(get_db)):
    """Update a medicine; status is re-derived from the new values"""
    service = InventoryService(db)
    medicine = await service.update_medicine(medicine_id, medicine_in.model_dump(exclude_unset=True))
    return MedicineResponse.model_validate(medicine)


@router.patch("/medicines/{medicine_id}/restock", response_model=MedicineResponse)
async def restock_medicine(medicine_id: str, restock_in: RestockRequest, db: AsyncSession = Depends(get_db)):
    service = InventoryService(db)
    medicine = await service.restock(medicine_id, restock_in.quantity)
    return MedicineResponse.model_validate(medicine)


@router.delete("/medicines/{medicine_id}")
async def delete_medicine(medicine_id: str, db: AsyncSession = Depends(get_db)):
    service = InventoryService(db)
    await service.delete_medicine(medicine_id)
    return {"message": "Medicine deleted successfully"}


# ==================== Category Endpoints ====================

@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(category_in: CategoryCreate, db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return CategoryResponse.model_validate(await service.create_category(category_in.model_dump()))


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(active_only: bool = Query(False), db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return [CategoryResponse.model_validate(c) for c in await service.list_categories(active_only)]


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return CategoryResponse.model_validate(await service.get_category(category_id))


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(category_id: str, category_in: CategoryUpdate, db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    category = await service.update_category(category_id, category_in.model_dump(exclude_unset=True))
    return CategoryResponse.model_validate(category)


@router.patch("/categories/{category_id}/toggle", response_model=CategoryResponse)
async def toggle_category(category_id: str, db: AsyncSession = Depends(get_db)):
    """Flip a category between active and inactive"""
    service = CategoryService(db)
    return CategoryResponse.model_validate(await service.toggle_category(category_id))


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a category and its sub-categories; refused while medicines use it"""
    service = CategoryService(db)
    await service.delete_category(category_id)
    return {"message": "Category deleted successfully"}


# ==================== Supplier Endpoints ====================

@router.post("/suppliers", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(supplier_in: SupplierCreate, db: AsyncSession = Depends(get_db)):
    service = SupplierService(db)
    return SupplierResponse.model_validate(await service.create_supplier(supplier_in.model_dump()))


@router.get("/suppliers", response_model=List[SupplierResponse])
async def list_suppliers(active_only: bool = Query(False), db: AsyncSession = Depends(get_db)):
    service = SupplierService(db)
    return [SupplierResponse.model_validate(s) for s in await service.list_suppliers(active_only)]


@router.get("/suppliers/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(supplier_id: str, db: AsyncSession = Depends(get_db)):
    service = SupplierService(db)
    return SupplierResponse.model_validate(await service.get_supplier(supplier_id))


@router.put("/suppliers/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(supplier_id: str, supplier_in: SupplierUpdate, db: AsyncSession = Depends(get_db)):
    service = SupplierService(db)
    supplier = await service.update_supplier(supplier_id, supplier_in.model_dump(exclude_unset=True))
    return SupplierResponse.model_validate(supplier)


@router.patch("/suppliers/{supplier_id}/toggle", response_model=SupplierResponse)
async def toggle_supplier(supplier_id: str, db: AsyncSession = Depends(get_db)):
    service = SupplierService(db)
    return SupplierResponse.model_validate(await service.toggle_supplier(supplier_id))


@router.delete("/suppliers/{supplier_id}")
async def delete_supplier(supplier_id: str, db: AsyncSession = Depends(get_db)):
    service = SupplierService(db)
    await service.delete_supplier(supplier_id)
    return {"message": "Supplier deleted successfully"}
