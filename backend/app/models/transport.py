"""Transport ORM — bus routes with ordered stops, vehicles and drivers.

Invariants:
    - Stops belong to a school through their route
    - A driver's license number is unique within a school
"""

import uuid
import datetime as dt

from sqlalchemy import (
    Boolean, Date, Float, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, Timestamps, UUIDPrimaryKey


class TransportRoute(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "transport_routes"
    __table_args__ = (UniqueConstraint("school_id", "code"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    stops: Mapped[list["RouteStop"]] = relationship(
        "RouteStop", cascade="all, delete-orphan", lazy="selectin",
        order_by="RouteStop.sequence",
    )


class RouteStop(UUIDPrimaryKey, Base):
    __tablename__ = "route_stops"

    route_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("transport_routes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    arrival_time: Mapped[str | None] = mapped_column(String(10))
    fare: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Vehicle(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "vehicles"
    __table_args__ = (UniqueConstraint("school_id", "number"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    route_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("transport_routes.id", ondelete="SET NULL"),
    )
    number: Mapped[str] = mapped_column(String(50), nullable=False)
    registration_no: Mapped[str | None] = mapped_column(String(50))
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    driver_name: Mapped[str | None] = mapped_column(String(200))
    driver_phone: Mapped[str | None] = mapped_column(String(30))
    driver_license: Mapped[str | None] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Driver(UUIDPrimaryKey, Timestamps, Base):
    __tablename__ = "drivers"
    __table_args__ = (UniqueConstraint("school_id", "license_number"),)

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    vehicle_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vehicles.id", ondelete="SET NULL"),
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    license_number: Mapped[str] = mapped_column(String(50), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))
    email: Mapped[str | None] = mapped_column(String(255))
    date_of_birth: Mapped[dt.date | None] = mapped_column(Date)
    joining_date: Mapped[dt.date | None] = mapped_column(Date)
    license_expiry: Mapped[dt.date | None] = mapped_column(Date)
    address: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
