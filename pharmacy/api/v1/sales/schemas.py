from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from pharmacy.domain.sales.models import PaymentMethod, PaymentStatus


class SaleCustomer(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, pattern=r"^[\+]?[1-9][\d]{0,15}$")
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=200)


class SaleItemCreate(BaseModel):
    medicine: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)


class SaleCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    items: List[SaleItemCreate] = Field(..., min_length=1)
    customer: SaleCustomer
    discount: float = Field(0, ge=0)
    tax: float = Field(0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.COMPLETED
    notes: Optional[str] = Field(None, max_length=500)


class SaleUpdate(BaseModel):
    """Only bookkeeping fields; lines and totals are fixed once sold"""
    model_config = ConfigDict(use_enum_values=True)

    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = Field(None, max_length=500)


class SaleItemResponse(BaseModel):
    id: str
    medicine_id: str
    medicine_name: str
    batch: str
    quantity: int
    price: float
    total: float

    model_config = ConfigDict(from_attributes=True)


class SaleCustomerResponse(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class SaleResponse(BaseModel):
    id: str
    items: List[SaleItemResponse]
    customer: SaleCustomerResponse
    subtotal: float
    discount: float
    tax: float
    total: float
    total_items: int
    payment_method: str
    payment_status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SalePagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class SaleList(BaseModel):
    items: List[SaleResponse]
    pagination: SalePagination
