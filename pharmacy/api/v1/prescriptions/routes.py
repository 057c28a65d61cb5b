"""
Prescriptions API Routes

Prescription intake, dispensing against stock, and cancellation.
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from pharmacy.infrastructure.database import get_db
from pharmacy.domain.prescriptions.models import PrescriptionStatus, PrescriptionPriority
from pharmacy.domain.prescriptions.service import PrescriptionService
from pharmacy.api.v1.prescriptions.schemas import (
    PrescriptionCreate, PrescriptionUpdate, PrescriptionResponse, PrescriptionList,
    DispenseRequest
)

router = APIRouter(tags=["Prescriptions"])


@router.post("", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_prescription(prescription_in: PrescriptionCreate, db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    prescription = await service.create_prescription(prescription_in.model_dump())
    return PrescriptionResponse.model_validate(prescription)


@router.get("", response_model=PrescriptionList)
async def list_prescriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[PrescriptionStatus] = Query(None, alias="status"),
    priority: Optional[PrescriptionPriority] = None,
    customer: Optional[str] = None,
    doctor: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """List prescriptions with filtering and pagination"""
    service = PrescriptionService(db)
    result = await service.list_prescriptions(
        status=status_filter.value if status_filter else None,
        priority=priority.value if priority else None,
        customer=customer,
        doctor=doctor,
        page=page,
        limit=limit,
    )
    return PrescriptionList(
        items=[PrescriptionResponse.model_validate(p) for p in result["items"]],
        pagination=result["pagination"],
    )


@router.get("/expiring", response_model=List[PrescriptionResponse])
async def list_expiring_prescriptions(
    days: int = Query(7, ge=1, le=365),
    db: AsyncSession = Depends(get_db)
):
    """Open prescriptions whose validity ends within ``days``"""
    service = PrescriptionService(db)
    return [PrescriptionResponse.model_validate(p) for p in await service.list_expiring(days)]


@router.get("/status/{prescription_status}", response_model=List[PrescriptionResponse])
async def list_prescriptions_by_status(prescription_status: str, db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    return [PrescriptionResponse.model_validate(p) for p in await service.list_by_status(prescription_status)]


@router.get("/customer/{phone}", response_model=List[PrescriptionResponse])
async def list_prescriptions_by_customer(phone: str, db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    return [PrescriptionResponse.model_validate(p) for p in await service.list_by_customer(phone)]


@router.get("/{prescription_id}", response_model=PrescriptionResponse)
async def get_prescription(prescription_id: str, db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    return PrescriptionResponse.model_validate(await service.get_prescription(prescription_id))


@router.put("/{prescription_id}", response_model=PrescriptionResponse)
async def update_prescription(
    prescription_id: str,
    prescription_in: PrescriptionUpdate,
    db: AsyncSession = Depends(get_db)
):
    service = PrescriptionService(db)
    prescription = await service.update_prescription(
        prescription_id, prescription_in.model_dump(exclude_unset=True)
    )
    return PrescriptionResponse.model_validate(prescription)


@router.post("/{prescription_id}/dispense", response_model=PrescriptionResponse)
async def dispense_medicine(
    prescription_id: str,
    dispense_in: DispenseRequest,
    db: AsyncSession = Depends(get_db)
):
    """Dispense part or all of one prescribed medicine from stock"""
    service = PrescriptionService(db)
    prescription = await service.dispense(prescription_id, dispense_in.medicine_id, dispense_in.quantity)
    return PrescriptionResponse.model_validate(prescription)


@router.post("/{prescription_id}/cancel", response_model=PrescriptionResponse)
async def cancel_prescription(prescription_id: str, db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    return PrescriptionResponse.model_validate(await service.cancel(prescription_id))


@router.delete("/{prescription_id}")
async def delete_prescription(prescription_id: str, db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    await service.delete_prescription(prescription_id)
    return {"message": "Prescription deleted successfully"}
