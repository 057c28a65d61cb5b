"""
Prescriptions Service Layer

Prescription intake and dispensing. Dispensing one line moves stock from
the medicine to the prescription in a single transaction and re-derives
the prescription's status.
"""

from typing import Optional, List, Dict, Any
from datetime import date, datetime, timedelta
import math

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.core.exceptions import (
    NotFoundError, ValidationError, ExceedsPrescribedError, handle_database_error
)
from pharmacy.domain.inventory.repository import MedicineRepository
from pharmacy.domain.inventory.stock import take_stock, run_stock_transaction, validate_quantity
from pharmacy.domain.prescriptions.models import (
    Prescription, PrescriptionItem, PrescriptionStatus, PrescriptionPriority
)
from pharmacy.domain.prescriptions.repository import PrescriptionRepository

NUMBER_PREFIX = "RX"
NUMBER_ATTEMPTS = 3
UPDATABLE_FIELDS = {"diagnosis", "notes", "priority"}


def next_prescription_number(last: Optional[str]) -> str:
    sequence = 0
    if last and last.startswith(NUMBER_PREFIX) and last[len(NUMBER_PREFIX):].isdigit():
        sequence = int(last[len(NUMBER_PREFIX):])
    return f"{NUMBER_PREFIX}{sequence + 1:06d}"


def _priority(value: Optional[str]) -> str:
    if value is None:
        return PrescriptionPriority.NORMAL.value
    try:
        return PrescriptionPriority(value).value
    except ValueError:
        raise ValidationError("Invalid priority", details={"priority": value})


class PrescriptionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = PrescriptionRepository(db)
        self.medicines = MedicineRepository(db)

    async def create_prescription(self, prescription_in: Dict[str, Any], today: Optional[date] = None) -> Prescription:
        today = today or date.today()
        customer = prescription_in.get("customer") or {}
        doctor = prescription_in.get("doctor") or {}
        lines = prescription_in.get("medicines") or []

        if not customer.get("name") or not customer.get("phone"):
            raise ValidationError("Customer name and phone are required")
        if not doctor.get("name") or not doctor.get("license"):
            raise ValidationError("Doctor name and license are required")
        if not prescription_in.get("diagnosis"):
            raise ValidationError("Diagnosis is required")
        if not lines:
            raise ValidationError("At least one medicine is required")
        valid_until = prescription_in.get("valid_until")
        if valid_until is None or valid_until <= today:
            raise ValidationError("Valid until date must be in the future")

        seen = set()
        for index, line in enumerate(lines):
            validate_quantity(line.get("quantity"))
            if not line.get("dosage") or not line.get("instructions"):
                raise ValidationError("Dosage and instructions are required", details={"line": index})
            if line.get("medicine") in seen:
                raise ValidationError("A medicine may appear only once per prescription",
                                      details={"medicine_id": line.get("medicine")})
            seen.add(line.get("medicine"))

        medicines = await self.medicines.get_many_fresh(seen)
        missing = [mid for mid in seen if mid not in medicines]
        if missing:
            raise NotFoundError("One or more medicines not found", details={"medicine_ids": missing})
        names = {mid: medicine.name for mid, medicine in medicines.items()}

        for attempt in range(1, NUMBER_ATTEMPTS + 1):
            prescription = Prescription(
                prescription_number=next_prescription_number(await self.repo.last_number()),
                customer_name=customer["name"],
                customer_phone=customer["phone"],
                customer_email=customer.get("email"),
                customer_age=customer.get("age"),
                customer_gender=customer.get("gender"),
                customer_address=customer.get("address"),
                doctor_name=doctor["name"],
                doctor_license=doctor["license"].upper(),
                doctor_specialization=doctor.get("specialization"),
                doctor_hospital=doctor.get("hospital"),
                doctor_phone=doctor.get("phone"),
                doctor_email=doctor.get("email"),
                diagnosis=prescription_in["diagnosis"],
                notes=prescription_in.get("notes"),
                priority=_priority(prescription_in.get("priority")),
                status=PrescriptionStatus.PENDING.value,
                valid_until=valid_until,
                items=[
                    PrescriptionItem(
                        position=position,
                        medicine_id=line["medicine"],
                        medicine_name=names[line["medicine"]],
                        dosage=line["dosage"],
                        quantity=line["quantity"],
                        dispensed=0,
                        instructions=line["instructions"],
                        frequency=line.get("frequency"),
                        duration=line.get("duration"),
                    )
                    for position, line in enumerate(lines)
                ],
            )
            self.repo.add(prescription)
            try:
                await self.db.commit()
            except IntegrityError as e:
                # Another request took the same number
                await self.db.rollback()
                if attempt == NUMBER_ATTEMPTS:
                    raise handle_database_error(e, "prescription create") from e
                continue
            logger.info(f"Prescription {prescription.prescription_number} created with {len(lines)} line(s)")
            return prescription

    async def dispense(
        self, prescription_id: str, medicine_id: str, quantity: int, today: Optional[date] = None
    ) -> Prescription:
        """Hand out ``quantity`` of one prescribed medicine.

        Fails without touching anything when the prescription is missing or
        cancelled, the medicine is not on it, the amount exceeds what remains
        prescribed, or there is not enough stock.
        """
        validate_quantity(quantity)

        async def work() -> Prescription:
            prescription = await self.repo.get_fresh(prescription_id)
            if not prescription:
                raise NotFoundError("Prescription not found", details={"prescription_id": prescription_id})
            if prescription.is_cancelled:
                raise ValidationError("Cannot dispense a cancelled prescription",
                                      details={"prescription_id": prescription_id})

            item = prescription.find_item(medicine_id)
            if item is None:
                raise NotFoundError("Medicine not found in prescription",
                                    details={"prescription_id": prescription_id, "medicine_id": medicine_id})
            if quantity > item.remaining:
                raise ExceedsPrescribedError(
                    f"Cannot dispense more than remaining quantity. Remaining: {item.remaining}",
                    remaining=item.remaining,
                    requested=quantity,
                )

            medicine = await self.medicines.get_fresh(medicine_id)
            if medicine is None:
                raise NotFoundError("Medicine not found", details={"medicine_id": medicine_id})
            take_stock(medicine, quantity, today)
            await self.db.flush()

            item.dispensed += quantity
            # Always write the parent row so its version guards the status
            prescription.updated_at = datetime.utcnow()
            prescription.refresh_status()
            await self.db.flush()
            return prescription

        prescription = await run_stock_transaction(self.db, work, "prescription dispense")
        logger.info(
            f"Dispensed {quantity} of {medicine_id} on {prescription.prescription_number}, "
            f"status {prescription.status}"
        )
        return prescription

    async def cancel(self, prescription_id: str) -> Prescription:
        async def work() -> Prescription:
            prescription = await self.repo.get_fresh(prescription_id)
            if not prescription:
                raise NotFoundError("Prescription not found", details={"prescription_id": prescription_id})
            if prescription.is_cancelled:
                raise ValidationError("Prescription is already cancelled")
            if prescription.status == PrescriptionStatus.DISPENSED.value:
                raise ValidationError("A fully dispensed prescription cannot be cancelled")
            prescription.status = PrescriptionStatus.CANCELLED.value
            await self.db.flush()
            return prescription

        prescription = await run_stock_transaction(self.db, work, "prescription cancel")
        logger.info(f"Prescription {prescription.prescription_number} cancelled")
        return prescription

    async def get_prescription(self, prescription_id: str) -> Prescription:
        prescription = await self.repo.get(prescription_id)
        if not prescription:
            raise NotFoundError("Prescription not found", details={"prescription_id": prescription_id})
        return prescription

    async def update_prescription(self, prescription_id: str, prescription_in: Dict[str, Any]) -> Prescription:
        data = {k: v for k, v in prescription_in.items() if k in UPDATABLE_FIELDS and v is not None}
        if "priority" in data:
            data["priority"] = _priority(data["priority"])

        async def work() -> Prescription:
            prescription = await self.repo.get_fresh(prescription_id)
            if not prescription:
                raise NotFoundError("Prescription not found", details={"prescription_id": prescription_id})
            if prescription.is_cancelled:
                raise ValidationError("A cancelled prescription cannot be modified")
            for field, value in data.items():
                setattr(prescription, field, value)
            await self.db.flush()
            return prescription

        return await run_stock_transaction(self.db, work, "prescription update")

    async def delete_prescription(self, prescription_id: str) -> None:
        prescription = await self.get_prescription(prescription_id)
        await self.repo.delete(prescription)

    async def list_prescriptions(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        customer: Optional[str] = None,
        doctor: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        if status is not None:
            status = self._status(status)
        if priority is not None:
            priority = _priority(priority)
        items, total = await self.repo.list(
            status=status, priority=priority, customer=customer, doctor=doctor,
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

    @staticmethod
    def _status(value: str) -> str:
        try:
            return PrescriptionStatus(value).value
        except ValueError:
            raise ValidationError("Invalid status", details={"status": value})

    async def list_by_status(self, status: str) -> List[Prescription]:
        return await self.repo.list_by_status(self._status(status))

    async def list_by_customer(self, phone: str) -> List[Prescription]:
        return await self.repo.list_by_customer(phone)

    async def list_expiring(self, days: int = 7, today: Optional[date] = None) -> List[Prescription]:
        validate_quantity(days, "days")
        today = today or date.today()
        return await self.repo.list_expiring(today, today + timedelta(days=days))
