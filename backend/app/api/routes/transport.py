"""Transport Routes — bus routes with ordered stops, vehicles and drivers.

Invariants:
    - Route code and vehicle number are unique within a school
    - Stops without an explicit sequence take their 1-based position in the request
    - A vehicle's route belongs to the vehicle's school
    - Stops are scoped through their route; a stop added without a sequence goes
      after the route's last stop
    - A driver's license number is unique within a school and their vehicle is in it
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import list_query, require_module
from app.core.domain_types import AuditAction
from app.core.envelope import paginated_response, success_response
from app.core.errors import ValidationFailedError
from app.core.pagination import ListQuery, parse_bool_flag
from app.core.tenancy import CurrentUser, resolve_school_id
from app.infrastructure.database import get_db
from app.models.transport import Driver, RouteStop, TransportRoute, Vehicle
from app.schemas.transport import (
    DriverCreate, DriverRead, RouteCreate, RouteRead, RouteStopCreate, RouteStopRead,
    VehicleCreate, VehicleRead,
)
from app.services.audit import record_audit, snapshot
from app.services.querying import (
    apply_search, apply_sort, get_scoped_or_404, paginate, row_exists, scope_to_school,
)

router = APIRouter(prefix="/api/transport", tags=["transport"])


@router.get("/routes")
async def list_routes(
    query: ListQuery = Depends(list_query),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(TransportRoute), TransportRoute, user)
    stmt = apply_search(stmt, query.search, [TransportRoute.name, TransportRoute.code])
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(TransportRoute.is_active == active)
    stmt = apply_sort(stmt, query, {
        "createdAt": TransportRoute.created_at, "name": TransportRoute.name,
        "code": TransportRoute.code,
    })
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [RouteRead.model_validate(r) for r in rows], total, query.pagination,
    )


@router.post("/routes", status_code=status.HTTP_201_CREATED)
async def create_route(
    body: RouteCreate,
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(
        db, TransportRoute, TransportRoute.school_id == school_id,
        TransportRoute.code == body.code,
    ):
        raise ValidationFailedError.single("code", "Route code already exists in this school")

    stops = [
        RouteStop(
            **stop.model_dump(exclude={"sequence"}),
            sequence=stop.sequence if stop.sequence is not None else position,
        )
        for position, stop in enumerate(body.stops, start=1)
    ]
    route = TransportRoute(
        **body.model_dump(exclude={"school_id", "stops"}),
        school_id=school_id, stops=sorted(stops, key=lambda s: s.sequence),
    )
    db.add(route)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "TransportRoute", route.id,
        school_id=school_id, new_value=snapshot(route),
    )
    await db.commit()
    return success_response(RouteRead.model_validate(route), "Route created successfully")


@router.get("/routes/{route_id}")
async def get_route(
    route_id: UUID,
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    route = await get_scoped_or_404(db, TransportRoute, route_id, user, "Route")
    return success_response(RouteRead.model_validate(route))


@router.get("/stops")
async def list_stops(
    query: ListQuery = Depends(list_query),
    route_id: UUID | None = Query(None, alias="routeId"),
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(
        select(RouteStop).join(TransportRoute, RouteStop.route_id == TransportRoute.id),
        TransportRoute, user,
    )
    if route_id:
        stmt = stmt.where(RouteStop.route_id == route_id)
    stmt = stmt.order_by(RouteStop.sequence.asc())
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [RouteStopRead.model_validate(s) for s in rows], total, query.pagination,
    )


@router.post("/stops", status_code=status.HTTP_201_CREATED)
async def create_stop(
    body: RouteStopCreate,
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    route = (await db.execute(scope_to_school(
        select(TransportRoute).where(TransportRoute.id == body.route_id), TransportRoute, user,
    ))).scalar_one_or_none()
    if route is None:
        raise ValidationFailedError.single("routeId", "Route not found")

    sequence = body.sequence
    if sequence is None:
        last = await db.scalar(
            select(func.max(RouteStop.sequence)).where(RouteStop.route_id == route.id),
        )
        sequence = (last or 0) + 1
    stop = RouteStop(**body.model_dump(exclude={"sequence"}), sequence=sequence)
    db.add(stop)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "RouteStop", stop.id,
        school_id=route.school_id, new_value=snapshot(stop),
    )
    await db.commit()
    return success_response(RouteStopRead.model_validate(stop), "Stop created successfully")


@router.get("/vehicles")
async def list_vehicles(
    query: ListQuery = Depends(list_query),
    route_id: UUID | None = Query(None, alias="routeId"),
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Vehicle), Vehicle, user)
    stmt = apply_search(stmt, query.search, [Vehicle.number, Vehicle.driver_name])
    if route_id:
        stmt = stmt.where(Vehicle.route_id == route_id)
    stmt = apply_sort(stmt, query, {"createdAt": Vehicle.created_at, "number": Vehicle.number})
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [VehicleRead.model_validate(v) for v in rows], total, query.pagination,
    )


@router.post("/vehicles", status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    body: VehicleCreate,
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(db, Vehicle, Vehicle.school_id == school_id, Vehicle.number == body.number):
        raise ValidationFailedError.single("number", "Vehicle number already exists in this school")
    if body.route_id and not await row_exists(
        db, TransportRoute, TransportRoute.id == body.route_id,
        TransportRoute.school_id == school_id,
    ):
        raise ValidationFailedError.single("routeId", "Invalid route")

    vehicle = Vehicle(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(vehicle)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Vehicle", vehicle.id,
        school_id=school_id, new_value=snapshot(vehicle),
    )
    await db.commit()
    return success_response(VehicleRead.model_validate(vehicle), "Vehicle created successfully")


@router.get("/drivers")
async def list_drivers(
    query: ListQuery = Depends(list_query),
    is_active: str | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    stmt = scope_to_school(select(Driver), Driver, user)
    stmt = apply_search(stmt, query.search, [Driver.name, Driver.license_number, Driver.phone])
    active = parse_bool_flag(is_active)
    if active is not None:
        stmt = stmt.where(Driver.is_active == active)
    stmt = apply_sort(stmt, query, {"createdAt": Driver.created_at, "name": Driver.name})
    rows, total = await paginate(db, stmt, query)
    return paginated_response(
        [DriverRead.model_validate(d) for d in rows], total, query.pagination,
    )


@router.post("/drivers", status_code=status.HTTP_201_CREATED)
async def create_driver(
    body: DriverCreate,
    user: CurrentUser = Depends(require_module("transport")),
    db: AsyncSession = Depends(get_db),
):
    school_id = resolve_school_id(user, body.school_id)
    if await row_exists(
        db, Driver, Driver.school_id == school_id,
        Driver.license_number == body.license_number,
    ):
        raise ValidationFailedError.single(
            "licenseNumber", "Driver with this license already exists in this school",
        )
    if body.vehicle_id and not await row_exists(
        db, Vehicle, Vehicle.id == body.vehicle_id, Vehicle.school_id == school_id,
    ):
        raise ValidationFailedError.single("vehicleId", "Invalid vehicle")

    driver = Driver(**body.model_dump(exclude={"school_id"}), school_id=school_id)
    db.add(driver)
    await db.flush()
    record_audit(
        db, user, AuditAction.CREATE, "Driver", driver.id,
        school_id=school_id, new_value=snapshot(driver),
    )
    await db.commit()
    return success_response(DriverRead.model_validate(driver), "Driver created successfully")
