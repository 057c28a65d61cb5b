from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from typing import List, Optional
from datetime import date, datetime

from pharmacy.core.config import settings
from pharmacy.domain.inventory.models import MedicineForm, PaymentTerms
from pharmacy.domain.inventory.status import MedicineStatus, derive_status


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


# Categories

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    icon: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    parent_id: Optional[str] = None
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    icon: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    active: bool
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Suppliers

class SupplierCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1, max_length=100)
    contact: str = Field(..., pattern=r"^[\+]?[1-9][\d]{0,15}$")
    email: EmailStr
    street: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=50)
    zip_code: Optional[str] = Field(None, max_length=10)
    country: Optional[str] = "India"
    gst_number: Optional[str] = Field(None, max_length=15)
    pan_number: Optional[str] = Field(None, max_length=10)
    payment_terms: PaymentTerms = PaymentTerms.CASH
    rating: int = Field(3, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=500)


class SupplierUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    contact: Optional[str] = Field(None, pattern=r"^[\+]?[1-9][\d]{0,15}$")
    email: Optional[EmailStr] = None
    street: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=50)
    zip_code: Optional[str] = Field(None, max_length=10)
    country: Optional[str] = None
    gst_number: Optional[str] = Field(None, max_length=15)
    pan_number: Optional[str] = Field(None, max_length=10)
    payment_terms: Optional[PaymentTerms] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=500)


class SupplierResponse(BaseModel):
    id: str
    name: str
    contact: str
    email: str
    full_address: str
    active: bool
    gst_number: Optional[str] = None
    pan_number: Optional[str] = None
    payment_terms: str
    rating: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Medicines

class MedicineCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1, max_length=100)
    category_id: str
    batch: str = Field(..., min_length=1, max_length=50)
    expiry_date: date
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)
    mrp: float = Field(..., ge=0)
    supplier_id: str
    par_level: int = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=500)
    manufacturer: Optional[str] = Field(None, max_length=100)
    dosage: Optional[str] = Field(None, max_length=50)
    form: MedicineForm = MedicineForm.TABLET
    prescription_required: bool = False
    barcode: Optional[str] = Field(None, max_length=64)


class MedicineUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[str] = None
    batch: Optional[str] = Field(None, min_length=1, max_length=50)
    expiry_date: Optional[date] = None
    quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    mrp: Optional[float] = Field(None, ge=0)
    supplier_id: Optional[str] = None
    par_level: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    manufacturer: Optional[str] = Field(None, max_length=100)
    dosage: Optional[str] = Field(None, max_length=50)
    form: Optional[MedicineForm] = None
    prescription_required: Optional[bool] = None
    barcode: Optional[str] = Field(None, max_length=64)


class MedicineResponse(BaseModel):
    id: str
    name: str
    category_id: str
    batch: str
    expiry_date: date
    quantity: int
    price: float
    mrp: float
    supplier_id: str
    par_level: int
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    dosage: Optional[str] = None
    form: str
    prescription_required: bool
    barcode: Optional[str] = None
    days_until_expiry: int
    profit_margin: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Declared last so the fields it is derived from are already validated
    status: MedicineStatus

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status")
    @classmethod
    def project_status(cls, v: MedicineStatus, info: ValidationInfo) -> MedicineStatus:
        data = info.data
        if {"quantity", "par_level", "expiry_date"} <= data.keys():
            return derive_status(
                data["quantity"], data["par_level"], data["expiry_date"],
                warning_days=settings.EXPIRY_WARNING_DAYS,
            )
        return v


class MedicineList(BaseModel):
    items: List[MedicineResponse]
    pagination: Pagination


class RestockRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class StatusRefreshResponse(BaseModel):
    updated: int
