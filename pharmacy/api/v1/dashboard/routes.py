"""
Dashboard API Routes

Read-only summaries for the pharmacy home screen.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.infrastructure.database import get_db
from pharmacy.domain.dashboard.service import DashboardService

router = APIRouter(tags=["Dashboard"])


@router.get("/stats", response_model=dict)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Counts of medicines by status, suppliers, categories and recent sales"""
    service = DashboardService(db)
    return await service.stats()


@router.get("/alerts", response_model=list)
async def get_alerts(db: AsyncSession = Depends(get_db)):
    service = DashboardService(db)
    return await service.alerts()


@router.get("/top-medicines", response_model=list)
async def get_top_medicines(
    limit: int = Query(5, ge=1, le=50),
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db)
):
    """Best sellers by revenue over the last ``days``"""
    service = DashboardService(db)
    return await service.top_medicines(limit=limit, days=days)


@router.get("/inventory-distribution", response_model=list)
async def get_inventory_distribution(db: AsyncSession = Depends(get_db)):
    service = DashboardService(db)
    return await service.inventory_distribution()


@router.get("/sales-chart", response_model=list)
async def get_sales_chart(days: int = Query(7, ge=1, le=90), db: AsyncSession = Depends(get_db)):
    service = DashboardService(db)
    return await service.sales_chart(days=days)
