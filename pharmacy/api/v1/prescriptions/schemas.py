from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import date, datetime
import enum

from pharmacy.domain.prescriptions.models import PrescriptionPriority


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PrescriptionCustomer(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., pattern=r"^[\+]?[1-9][\d]{0,15}$")
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[Gender] = None
    address: Optional[str] = Field(None, max_length=200)


class PrescriptionDoctor(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    license: str = Field(..., min_length=1, max_length=20)
    specialization: Optional[str] = Field(None, max_length=100)
    hospital: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, pattern=r"^[\+]?[1-9][\d]{0,15}$")
    email: Optional[EmailStr] = None


class PrescriptionItemCreate(BaseModel):
    medicine: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., gt=0)
    instructions: str = Field(..., min_length=1, max_length=200)
    frequency: Optional[str] = Field(None, max_length=50)
    duration: Optional[str] = Field(None, max_length=50)


class PrescriptionCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    customer: PrescriptionCustomer
    doctor: PrescriptionDoctor
    medicines: List[PrescriptionItemCreate] = Field(..., min_length=1)
    diagnosis: str = Field(..., min_length=1, max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)
    priority: PrescriptionPriority = PrescriptionPriority.NORMAL
    valid_until: date


class PrescriptionUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    diagnosis: Optional[str] = Field(None, min_length=1, max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)
    priority: Optional[PrescriptionPriority] = None


class DispenseRequest(BaseModel):
    medicine_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class PrescriptionItemResponse(BaseModel):
    id: str
    medicine_id: str
    medicine_name: str
    dosage: str
    quantity: int
    dispensed: int
    remaining: int
    instructions: str
    frequency: Optional[str] = None
    duration: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PrescriptionCustomerResponse(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None


class PrescriptionDoctorResponse(BaseModel):
    name: str
    license: str
    specialization: Optional[str] = None
    hospital: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class PrescriptionResponse(BaseModel):
    id: str
    prescription_number: str
    customer: PrescriptionCustomerResponse
    doctor: PrescriptionDoctorResponse
    medicines: List[PrescriptionItemResponse] = Field(validation_alias="items")
    diagnosis: str
    notes: Optional[str] = None
    status: str
    priority: str
    valid_until: date
    days_until_expiry: int
    total_quantity: int
    total_dispensed: int
    completion_percentage: int
    dispensed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class PrescriptionPagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PrescriptionList(BaseModel):
    items: List[PrescriptionResponse]
    pagination: PrescriptionPagination
