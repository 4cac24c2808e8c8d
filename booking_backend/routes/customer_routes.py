import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth.dependencies import require_admin
from booking_backend.core.errors import database_unavailable
from booking_backend.database import get_db
from booking_backend.models.appointment import Appointment
from booking_backend.models.customer import Customer
from booking_backend.models.review import Review
from booking_backend.models.user import User

router = APIRouter(tags=['customers'])
logger = logging.getLogger(__name__)


class CustomerRequest(BaseModel):
    full_name: str
    email: EmailStr | None = None
    phone: str | None = None

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name is required.')
        return normalized

    @field_validator('email', mode='before')
    @classmethod
    def blank_email_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class UpdateCustomerRequest(CustomerRequest):
    full_name: str | None = None

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name cannot be blank.')
        return normalized


class CustomerResponse(BaseModel):
    id: int
    business_id: int
    user_id: int | None = None
    full_name: str
    email: str | None = None
    phone: str | None = None
    appointment_count: int = 0
    review_count: int = 0


def get_business_customer(db: Session, customer_id: int, business_id: int) -> Customer:
    customer = db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.business_id == business_id,
    ).first()
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Customer not found.')
    return customer


def build_customer_response(db: Session, customer: Customer) -> CustomerResponse:
    return CustomerResponse(
        id=customer.id,
        business_id=customer.business_id,
        user_id=customer.user_id,
        full_name=customer.full_name,
        email=customer.email,
        phone=customer.phone,
        appointment_count=db.query(Appointment).filter(Appointment.customer_id == customer.id).count(),
        review_count=db.query(Review).filter(Review.customer_id == customer.id).count(),
    )


@router.get('', response_model=list[CustomerResponse])
def list_customers(current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        customers = db.query(Customer).filter(
            Customer.business_id == current_user.business_id,
        ).order_by(Customer.full_name.asc()).all()
        return [build_customer_response(db, customer) for customer in customers]
    except SQLAlchemyError as exc:
        logger.exception('Failed to list customers')
        raise database_unavailable() from exc


@router.get('/{customer_id}', response_model=CustomerResponse)
def get_customer(
    customer_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    customer = get_business_customer(db, customer_id, current_user.business_id)
    return build_customer_response(db, customer)


@router.post('', response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    data: CustomerRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        customer = Customer(business_id=current_user.business_id, **data.model_dump())
        db.add(customer)
        db.commit()
        db.refresh(customer)
        logger.info('Created customer %s for business %s', customer.id, current_user.business_id)
        return build_customer_response(db, customer)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create customer')
        raise database_unavailable() from exc


@router.put('/{customer_id}', response_model=CustomerResponse)
def update_customer(
    customer_id: int,
    data: UpdateCustomerRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    customer = get_business_customer(db, customer_id, current_user.business_id)
    try:
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == 'full_name' and value is None:
                continue
            setattr(customer, field, value)
        db.commit()
        db.refresh(customer)
        return build_customer_response(db, customer)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update customer %s', customer_id)
        raise database_unavailable() from exc


@router.delete('/{customer_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    customer = get_business_customer(db, customer_id, current_user.business_id)
    try:
        has_history = db.query(Appointment.id).filter(Appointment.customer_id == customer.id).first()
        if has_history:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This customer has appointments and cannot be deleted.',
            )
        db.query(Review).filter(Review.customer_id == customer.id).delete(synchronize_session=False)
        db.delete(customer)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete customer %s', customer_id)
        raise database_unavailable() from exc
