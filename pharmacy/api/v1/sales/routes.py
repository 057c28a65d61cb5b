"""
Sales API Routes

Point-of-sale checkout, lookup and reversal.
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime

from pharmacy.infrastructure.database import get_db
from pharmacy.domain.sales.models import PaymentStatus
from pharmacy.domain.sales.service import SaleService
from pharmacy.api.v1.sales.schemas import SaleCreate, SaleUpdate, SaleResponse, SaleList

router = APIRouter(tags=["Sales"])


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(sale_in: SaleCreate, db: AsyncSession = Depends(get_db)):
    """Check out a basket.

    Every line is taken from stock and the sale recorded together; if any
    line fails nothing is changed.
    """
    service = SaleService(db)
    sale = await service.create_sale(sale_in.model_dump())
    return SaleResponse.model_validate(sale)


@router.get("", response_model=SaleList)
async def list_sales(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    payment_status: Optional[PaymentStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db)
):
    service = SaleService(db)
    result = await service.list_sales(
        payment_status=payment_status.value if payment_status else None,
        start=start_date,
        end=end_date,
        page=page,
        limit=limit,
    )
    return SaleList(
        items=[SaleResponse.model_validate(s) for s in result["items"]],
        pagination=result["pagination"],
    )


@router.get("/date-range", response_model=List[SaleResponse])
async def list_sales_by_date_range(
    start_date: datetime,
    end_date: datetime,
    db: AsyncSession = Depends(get_db)
):
    service = SaleService(db)
    sales = await service.list_by_date_range(start_date, end_date)
    return [SaleResponse.model_validate(s) for s in sales]


@router.get("/customer/{phone}", response_model=List[SaleResponse])
async def list_sales_by_customer(phone: str, db: AsyncSession = Depends(get_db)):
    service = SaleService(db)
    return [SaleResponse.model_validate(s) for s in await service.list_by_customer(phone)]


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(sale_id: str, db: AsyncSession = Depends(get_db)):
    service = SaleService(db)
    return SaleResponse.model_validate(await service.get_sale(sale_id))


@router.put("/{sale_id}", response_model=SaleResponse)
async def update_sale(sale_id: str, sale_in: SaleUpdate, db: AsyncSession = Depends(get_db)):
    service = SaleService(db)
    sale = await service.update_sale(sale_id, sale_in.model_dump(exclude_unset=True))
    return SaleResponse.model_validate(sale)


@router.delete("/{sale_id}")
async def delete_sale(sale_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a sale and return its quantities to stock"""
    service = SaleService(db)
    await service.delete_sale(sale_id)
    return {"message": "Sale deleted successfully"}
