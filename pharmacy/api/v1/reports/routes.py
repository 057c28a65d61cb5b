"""
Reports API Routes

JSON reports over sales, inventory, prescriptions and suppliers.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

from pharmacy.infrastructure.database import get_db
from pharmacy.domain.reports.service import ReportService

router = APIRouter(tags=["Reports"])


@router.get("/sales", response_model=dict)
async def get_sales_report(start_date: datetime, end_date: datetime, db: AsyncSession = Depends(get_db)):
    """Totals, payment methods, daily breakdown and top sellers for a period"""
    service = ReportService(db)
    return await service.sales_report(start_date, end_date)


@router.get("/inventory", response_model=dict)
async def get_inventory_report(db: AsyncSession = Depends(get_db)):
    service = ReportService(db)
    return await service.inventory_report()


@router.get("/prescriptions", response_model=dict)
async def get_prescriptions_report(start_date: datetime, end_date: datetime, db: AsyncSession = Depends(get_db)):
    service = ReportService(db)
    return await service.prescriptions_report(start_date, end_date)


@router.get("/suppliers", response_model=dict)
async def get_suppliers_report(db: AsyncSession = Depends(get_db)):
    """Per-supplier stock statistics"""
    service = ReportService(db)
    return await service.suppliers_report()
