from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from pharmacy.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    CHEQUE = "cheque"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Sale(Base):
    __tablename__ = "sales"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=True, index=True)
    customer_email = Column(String(255), nullable=True, index=True)
    customer_address = Column(String(200), nullable=True)
    subtotal = Column(Float, nullable=False, default=0)
    discount = Column(Float, nullable=False, default=0)
    tax = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)
    payment_method = Column(String(16), nullable=False, default=PaymentMethod.CASH.value)
    payment_status = Column(String(16), nullable=False, default=PaymentStatus.COMPLETED.value, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
        lazy="selectin",
    )

    @property
    def customer(self) -> dict:
        return {
            "name": self.customer_name,
            "phone": self.customer_phone,
            "email": self.customer_email,
            "address": self.customer_address,
        }

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)


class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    sale_id = Column(String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    # Reference only; the medicine may later disappear
    medicine_id = Column(String(36), nullable=False, index=True)
    medicine_name = Column(String(100), nullable=False)
    batch = Column(String(50), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
    )

    sale = relationship("Sale", back_populates="items")
