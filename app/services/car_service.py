# app/services/car_service.py
"""
Car listings: create (admin or host), update (owner or admin), soft delete.
Image uploads arrive as data URLs and are stored at uploads/cars/<id>.png.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import BadRequest, Forbidden, NotFound
from app.models.car import Car
from app.models.user import User
from app.schemas.car import CarCreate, CarOut, CarUpdate
from app.security import is_admin
from app.services.hooks import PostCommitHooks
from app.services.mappers import car_from_row
from app.services.mirror_service import EntityKind
from app.utils.files import public_path, save_data_url, upload_path
from app.utils.logger import get_logger

logger = get_logger(__name__)


def absolute_image(car: CarOut, base_url: str) -> CarOut:
    """Rewrite a stored relative image path ("uploads/...") into an absolute URL."""
    image = car.image
    if image and not image.startswith(("http://", "https://", "data:")):
        car.image = f"{base_url.rstrip('/')}/{image.lstrip('/')}"
    return car


def _store_image(car: Car, image_data: Optional[str]):
    if not image_data:
        return
    saved = save_data_url(image_data, upload_path("cars", f"{car.id}.png"))
    if not saved:
        raise BadRequest("imageData must be a base64 data URL", reason="invalid_image")
    car.image = public_path(saved)


def _get_car(db: Session, car_id: int) -> Car:
    car = db.query(Car).filter(Car.id == car_id, Car.deleted.is_(False)).first()
    if not car:
        raise NotFound("Car not found", reason="car_not_found")
    return car


def _check_owner(car: Car, claims: dict):
    if is_admin(claims):
        return
    if car.host_id is None or car.host_id != claims.get("id"):
        raise Forbidden("Not the owner of this car", reason="not_car_owner")


def create_car(db: Session, hooks: PostCommitHooks, body: CarCreate, host_id: Optional[int] = None) -> CarOut:
    """Insert a car. host_id=None lists it as platform-owned."""
    host = None
    if host_id is not None:
        host = db.query(User).filter(User.id == host_id, User.deleted.is_(False)).first()
        if not host:
            raise BadRequest("Host not found", reason="invalid_host")

    fields = body.model_dump(exclude={"image_data", "host_id"})
    car = Car(**fields, host_id=host_id, deleted=False)
    db.add(car)
    db.flush()
    _store_image(car, body.image_data)
    db.commit()
    logger.info(f"[CARS] Created car {car.id} '{car.name}' host={host_id}")

    hooks.mirror(EntityKind.CAR, car)
    return car_from_row(car, host)


def update_car(db: Session, hooks: PostCommitHooks, car_id: int, claims: dict, body: CarUpdate) -> CarOut:
    car = _get_car(db, car_id)
    _check_owner(car, claims)

    changes = body.model_dump(exclude_unset=True, exclude={"image_data"})
    for field, value in changes.items():
        if value is None and field in ("name", "price_per_day", "available"):
            continue
        setattr(car, field, value)
    _store_image(car, body.image_data)
    car.updated_at = datetime.utcnow()
    db.commit()
    logger.info(f"[CARS] Updated car {car.id}: {sorted(changes)}")

    hooks.mirror(EntityKind.CAR, car)
    host = db.query(User).filter(User.id == car.host_id).first() if car.host_id else None
    return car_from_row(car, host)


def delete_car(db: Session, hooks: PostCommitHooks, car_id: int, claims: dict) -> dict:
    car = _get_car(db, car_id)
    _check_owner(car, claims)
    car.deleted = True
    car.updated_at = datetime.utcnow()
    db.commit()
    logger.info(f"[CARS] Soft-deleted car {car.id}")

    hooks.mirror(EntityKind.CAR, car)
    return {"ok": True, "softDeleted": True}
