"""
Inventory Domain Models

- Category and Supplier master data
- Medicine: one stocked batch of a drug, the shared stock resource
"""

from sqlalchemy import Column, String, Integer, Float, Date, DateTime, ForeignKey, Text, Boolean, CheckConstraint
from datetime import date, datetime
from typing import Optional
import uuid
import enum

from pharmacy.core.config import settings
from pharmacy.infrastructure.database import Base
from pharmacy.domain.inventory.status import (
    MedicineStatus, derive_status, days_until_expiry, status_expression
)


def gen_uuid():
    return str(uuid.uuid4())


class MedicineForm(str, enum.Enum):
    TABLET = "tablet"
    CAPSULE = "capsule"
    SYRUP = "syrup"
    INJECTION = "injection"
    CREAM = "cream"
    DROPS = "drops"
    INHALER = "inhaler"
    OTHER = "other"


class PaymentTerms(str, enum.Enum):
    CASH = "cash"
    CREDIT_15 = "credit-15"
    CREDIT_30 = "credit-30"
    CREDIT_45 = "credit-45"
    CREDIT_60 = "credit-60"


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(String(200), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    icon = Column(String(64), nullable=True)
    color = Column(String(7), nullable=True)
    parent_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    name = Column(String(100), nullable=False, index=True)
    contact = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    street = Column(String(100), nullable=True)
    city = Column(String(50), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(10), nullable=True)
    country = Column(String(50), nullable=True, default="India")
    active = Column(Boolean, nullable=False, default=True)
    gst_number = Column(String(15), nullable=True)
    pan_number = Column(String(10), nullable=True)
    payment_terms = Column(String(16), nullable=False, default=PaymentTerms.CASH.value)
    rating = Column(Integer, nullable=False, default=3)
    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_address(self) -> str:
        parts = [self.street, self.city, self.state, self.zip_code, self.country]
        return ", ".join(p for p in parts if p)


class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    name = Column(String(100), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    batch = Column(String(50), nullable=False, index=True)
    expiry_date = Column(Date, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False)
    mrp = Column(Float, nullable=False)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=False, index=True)
    par_level = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=MedicineStatus.IN_STOCK.value, index=True)
    description = Column(String(500), nullable=True)
    manufacturer = Column(String(100), nullable=True)
    dosage = Column(String(50), nullable=True)
    form = Column(String(16), nullable=False, default=MedicineForm.TABLET.value)
    prescription_required = Column(Boolean, nullable=False, default=False)
    barcode = Column(String(64), nullable=True, unique=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Every UPDATE carries "AND version = <read version>"
    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_medicines_quantity_non_negative"),
        CheckConstraint("par_level >= 0", name="ck_medicines_par_level_non_negative"),
    )

    @classmethod
    def status_as_of(cls, today: Optional[date] = None):
        """SQL expression for the derived status, usable in WHERE and GROUP BY"""
        return status_expression(
            cls.quantity, cls.par_level, cls.expiry_date, today, settings.EXPIRY_WARNING_DAYS
        )

    def current_status(self, today: Optional[date] = None, warning_days: Optional[int] = None) -> MedicineStatus:
        return derive_status(
            self.quantity,
            self.par_level,
            self.expiry_date,
            today,
            warning_days if warning_days is not None else settings.EXPIRY_WARNING_DAYS,
        )

    def refresh_status(self, today: Optional[date] = None) -> bool:
        """Write the derived status onto the row; True when it changed"""
        new_status = self.current_status(today).value
        changed = new_status != self.status
        self.status = new_status
        return changed

    @property
    def days_until_expiry(self) -> int:
        return days_until_expiry(self.expiry_date)

    @property
    def profit_margin(self) -> float:
        if not self.price:
            return 0.0
        return round((self.mrp - self.price) / self.price * 100, 2)
