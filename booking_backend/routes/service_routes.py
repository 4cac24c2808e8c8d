import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth.dependencies import require_admin, require_business
from booking_backend.core.errors import database_unavailable
from booking_backend.database import get_db
from booking_backend.models.appointment import Appointment
from booking_backend.models.service import Service
from booking_backend.models.user import User

router = APIRouter(tags=['services'])
logger = logging.getLogger(__name__)


class ServiceRequest(BaseModel):
    name: str
    description: str | None = None
    duration_minutes: int
    price: float = 0

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name is required.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value < 1:
            raise ValueError('Duration must be at least 1 minute.')
        return value

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float) -> float:
        if value < 0:
            raise ValueError('Price cannot be negative.')
        return value


class UpdateServiceRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    duration_minutes: int | None = None
    price: float | None = None

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError('Duration must be at least 1 minute.')
        return value

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError('Price cannot be negative.')
        return value


class ServiceResponse(BaseModel):
    id: int
    business_id: int
    name: str
    description: str | None = None
    duration_minutes: int
    price: float

    class Config:
        from_attributes = True


def get_business_service(db: Session, service_id: int, business_id: int) -> Service:
    service = db.query(Service).filter(
        Service.id == service_id,
        Service.business_id == business_id,
    ).first()
    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Service not found.')
    return service


@router.get('', response_model=list[ServiceResponse])
def list_services(current_user: User = Depends(require_business), db: Session = Depends(get_db)):
    try:
        return db.query(Service).filter(
            Service.business_id == current_user.business_id,
        ).order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to list services')
        raise database_unavailable() from exc


@router.get('/{service_id}', response_model=ServiceResponse)
def get_service(
    service_id: int,
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    return get_business_service(db, service_id, current_user.business_id)


@router.post('', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    data: ServiceRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        service = Service(business_id=current_user.business_id, **data.model_dump())
        db.add(service)
        db.commit()
        db.refresh(service)
        return service
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create service')
        raise database_unavailable() from exc


@router.put('/{service_id}', response_model=ServiceResponse)
def update_service(
    service_id: int,
    data: UpdateServiceRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = get_business_service(db, service_id, current_user.business_id)
    try:
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(service, field, value.strip() if isinstance(value, str) else value)
        db.commit()
        db.refresh(service)
        return service
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update service %s', service_id)
        raise database_unavailable() from exc


@router.delete('/{service_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = get_business_service(db, service_id, current_user.business_id)
    try:
        in_use = db.query(Appointment.id).filter(Appointment.service_id == service.id).first()
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This service has appointments and cannot be deleted.',
            )
        db.delete(service)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete service %s', service_id)
        raise database_unavailable() from exc
