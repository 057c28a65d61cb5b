"""
Prescriptions Domain Models

A prescription is one doctor's order for a customer; its lines track how
much of each medicine has been handed out so far.
"""

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import date, datetime
from typing import Optional
import uuid
import enum

from pharmacy.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class PrescriptionStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIALLY_DISPENSED = "partially-dispensed"
    DISPENSED = "dispensed"
    CANCELLED = "cancelled"


class PrescriptionPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    prescription_number = Column(String(16), nullable=False, unique=True)

    customer_name = Column(String(100), nullable=False, index=True)
    customer_phone = Column(String(20), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)
    customer_age = Column(Integer, nullable=True)
    customer_gender = Column(String(8), nullable=True)
    customer_address = Column(String(200), nullable=True)

    doctor_name = Column(String(100), nullable=False, index=True)
    doctor_license = Column(String(20), nullable=False)
    doctor_specialization = Column(String(100), nullable=True)
    doctor_hospital = Column(String(100), nullable=True)
    doctor_phone = Column(String(20), nullable=True)
    doctor_email = Column(String(255), nullable=True)

    diagnosis = Column(String(200), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(24), nullable=False, default=PrescriptionStatus.PENDING.value, index=True)
    priority = Column(String(8), nullable=False, default=PrescriptionPriority.NORMAL.value, index=True)
    valid_until = Column(Date, nullable=False, index=True)
    dispensed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    items = relationship(
        "PrescriptionItem",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionItem.position",
        lazy="selectin",
    )

    @property
    def customer(self) -> dict:
        return {
            "name": self.customer_name,
            "phone": self.customer_phone,
            "email": self.customer_email,
            "age": self.customer_age,
            "gender": self.customer_gender,
            "address": self.customer_address,
        }

    @property
    def doctor(self) -> dict:
        return {
            "name": self.doctor_name,
            "license": self.doctor_license,
            "specialization": self.doctor_specialization,
            "hospital": self.doctor_hospital,
            "phone": self.doctor_phone,
            "email": self.doctor_email,
        }

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_dispensed(self) -> int:
        return sum(item.dispensed for item in self.items)

    @property
    def completion_percentage(self) -> int:
        if self.total_quantity == 0:
            return 0
        return round(self.total_dispensed / self.total_quantity * 100)

    @property
    def days_until_expiry(self) -> int:
        return (self.valid_until - date.today()).days

    @property
    def is_cancelled(self) -> bool:
        return self.status == PrescriptionStatus.CANCELLED.value

    def find_item(self, medicine_id: str) -> Optional["PrescriptionItem"]:
        for item in self.items:
            if item.medicine_id == medicine_id:
                return item
        return None

    def refresh_status(self) -> str:
        """Derive status from dispensed totals; cancelled stays cancelled"""
        if self.is_cancelled:
            return self.status

        dispensed = self.total_dispensed
        if dispensed == 0:
            self.status = PrescriptionStatus.PENDING.value
        elif dispensed == self.total_quantity:
            self.status = PrescriptionStatus.DISPENSED.value
            if self.dispensed_at is None:
                self.dispensed_at = datetime.utcnow()
        else:
            self.status = PrescriptionStatus.PARTIALLY_DISPENSED.value
        return self.status


class PrescriptionItem(Base):
    __tablename__ = "prescription_items"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    prescription_id = Column(
        String(36), ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    medicine_id = Column(String(36), nullable=False, index=True)
    medicine_name = Column(String(100), nullable=False)
    dosage = Column(String(50), nullable=False)
    quantity = Column(Integer, nullable=False)
    dispensed = Column(Integer, nullable=False, default=0)
    instructions = Column(String(200), nullable=False)
    frequency = Column(String(50), nullable=True)
    duration = Column(String(50), nullable=True)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_prescription_items_quantity_positive"),
        CheckConstraint("dispensed >= 0 AND dispensed <= quantity", name="ck_prescription_items_dispensed_bounds"),
    )

    prescription = relationship("Prescription", back_populates="items")

    @property
    def remaining(self) -> int:
        return self.quantity - self.dispensed
