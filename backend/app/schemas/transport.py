"""Transport Schemas — routes, stops, vehicles and drivers."""

import datetime as dt
from uuid import UUID

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel, Phone, RequiredStr


class StopCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    location: str | None = None
    arrival_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")
    fare: float = Field(0.0, ge=0)
    sequence: int | None = Field(None, ge=0)


class StopRead(CamelModel):
    id: UUID
    name: str
    location: str | None
    arrival_time: str | None
    fare: float
    sequence: int


class RouteCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    code: RequiredStr = Field(max_length=50)
    school_id: UUID | None = None
    description: str | None = None
    is_active: bool = True
    stops: list[StopCreate] = Field(default_factory=list)


class RouteRead(CamelModel):
    id: UUID
    school_id: UUID
    name: str
    code: str
    description: str | None
    is_active: bool
    stops: list[StopRead] = Field(default_factory=list)


class VehicleCreate(CamelModel):
    number: RequiredStr = Field(max_length=50)
    school_id: UUID | None = None
    registration_no: str | None = None
    type: RequiredStr = Field(max_length=50)
    capacity: int = Field(gt=0)
    route_id: UUID | None = None
    driver_name: str | None = None
    driver_phone: Phone | None = None
    driver_license: str | None = None
    is_active: bool = True


class VehicleRead(CamelModel):
    id: UUID
    school_id: UUID
    route_id: UUID | None
    number: str
    registration_no: str | None
    type: str
    capacity: int
    driver_name: str | None
    driver_phone: str | None
    is_active: bool


class RouteStopCreate(StopCreate):
    route_id: UUID
    is_active: bool = True


class RouteStopRead(StopRead):
    route_id: UUID
    is_active: bool


class DriverCreate(CamelModel):
    name: RequiredStr = Field(max_length=200)
    school_id: UUID | None = None
    license_number: RequiredStr = Field(max_length=50)
    phone: Phone | None = None
    email: EmailStr | None = None
    date_of_birth: dt.date | None = None
    joining_date: dt.date | None = None
    license_expiry: dt.date | None = None
    address: str | None = None
    vehicle_id: UUID | None = None
    is_active: bool = True


class DriverRead(CamelModel):
    id: UUID
    school_id: UUID
    vehicle_id: UUID | None
    name: str
    license_number: str
    phone: str | None
    email: str | None
    joining_date: dt.date | None
    license_expiry: dt.date | None
    is_active: bool
