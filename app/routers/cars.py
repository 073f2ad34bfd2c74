# app/routers/cars.py
"""
Car listings.
Reads go through the read resolver (mirror when reachable, else primary);
writes always target the primary and are mirrored afterwards.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_hooks, get_resolver
from app.errors import NotFound
from app.schemas.car import AvailabilityOut, CarCreate, CarOut, CarUpdate
from app.security import require_admin, require_auth, require_user_or_admin
from app.services import car_service
from app.services.hooks import PostCommitHooks
from app.services.read_resolution import ReadResolver
from app.utils.ids import parse_ref, require_primary

router = APIRouter()


def _absolute(request: Request, cars):
    base_url = str(request.base_url)
    return [car_service.absolute_image(c, base_url) for c in cars]


@router.get("/cars", response_model=List[CarOut], summary="List cars")
async def list_cars(request: Request, city: Optional[str] = None,
                    resolver: ReadResolver = Depends(get_resolver)):
    return _absolute(request, await resolver.resolve_list("list_cars", city=city))


@router.get("/cars/availability", response_model=List[AvailabilityOut],
            summary="Availability of every car for a date range")
async def availability(pickup: str = Query(..., min_length=1),
                       return_date: str = Query(..., alias="return", min_length=1),
                       city: Optional[str] = None,
                       resolver: ReadResolver = Depends(get_resolver)):
    """A car is free when no non-cancelled booking overlaps [pickup, return)."""
    return await resolver.resolve_list("availability", pickup, return_date, city)


@router.get("/cars/admin", response_model=List[CarOut], summary="Admin — list cars with hosts")
async def list_cars_admin(request: Request, claims: dict = Depends(require_admin),
                          resolver: ReadResolver = Depends(get_resolver)):
    return _absolute(request, await resolver.resolve_list("list_cars"))


@router.get("/cars/mine", response_model=List[CarOut], summary="Cars listed by the caller")
async def list_my_cars(request: Request, claims: dict = Depends(require_auth),
                       resolver: ReadResolver = Depends(get_resolver)):
    return _absolute(request, await resolver.resolve_list("list_cars", host_id=claims["id"]))


@router.get("/cars/{ref}", response_model=CarOut, summary="Get a car")
async def get_car(ref: str, request: Request, resolver: ReadResolver = Depends(get_resolver)):
    car = await resolver.resolve_one("get_car", parse_ref(ref))
    if car is None:
        raise NotFound("Car not found", reason="car_not_found")
    return car_service.absolute_image(car, str(request.base_url))


@router.post("/cars", response_model=CarOut, status_code=201, summary="Admin — create a car")
def create_car(body: CarCreate, request: Request, claims: dict = Depends(require_admin),
               db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    car = car_service.create_car(db, hooks, body, host_id=body.host_id)
    return car_service.absolute_image(car, str(request.base_url))


@router.post("/cars/host", response_model=CarOut, status_code=201, summary="List your own car")
def create_host_car(body: CarCreate, request: Request, claims: dict = Depends(require_auth),
                    db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    car = car_service.create_car(db, hooks, body, host_id=claims["id"])
    return car_service.absolute_image(car, str(request.base_url))


@router.put("/cars/{ref}", response_model=CarOut, summary="Update a car (owner or admin)")
def update_car(ref: str, body: CarUpdate, request: Request, claims: dict = Depends(require_user_or_admin),
               db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    car = car_service.update_car(db, hooks, require_primary(parse_ref(ref)), claims, body)
    return car_service.absolute_image(car, str(request.base_url))


@router.delete("/cars/{ref}", summary="Soft-delete a car (owner or admin)")
def delete_car(ref: str, claims: dict = Depends(require_user_or_admin),
               db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return car_service.delete_car(db, hooks, require_primary(parse_ref(ref)), claims)
