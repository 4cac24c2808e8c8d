import logging
import re
import secrets
import string

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth import jwt_handler
from booking_backend.auth.passwords import hash_password, verify_password
from booking_backend.core.errors import database_unavailable
from booking_backend.database import get_db
from booking_backend.models.business import Business
from booking_backend.models.customer import Customer
from booking_backend.models.user import ADMIN_ROLE, CUSTOMER_ROLE, User
from booking_backend.services.site_settings import get_or_create_settings

router = APIRouter(tags=['auth'])
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
REGISTRATION_CODE_LENGTH = 6
REGISTRATION_CODE_ALPHABET = string.ascii_uppercase + string.digits


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    is_admin: bool
    phone: str | None = None
    business_name: str | None = None
    registration_code: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return value.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
        return value

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name is required.')
        return normalized

    @field_validator('business_name', 'registration_code', 'phone')
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return value.strip().lower()


class BusinessResponse(BaseModel):
    id: int
    name: str
    slug: str | None = None
    registration_code: str
    description: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    phone: str | None = None
    role: str
    business_id: int | None = None
    business: BusinessResponse | None = None


class CustomerSummary(BaseModel):
    id: int
    full_name: str
    email: str | None = None
    phone: str | None = None
    business_id: int

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
    customer: CustomerSummary | None = None


def slugify(name: str) -> str:
    return re.sub(r'\s+', '-', name.strip().lower())


def generate_registration_code(db: Session) -> str:
    while True:
        code = ''.join(secrets.choice(REGISTRATION_CODE_ALPHABET) for _ in range(REGISTRATION_CODE_LENGTH))
        if not db.query(Business.id).filter(Business.registration_code == code).first():
            return code


def build_user_response(db: Session, user: User) -> UserResponse:
    business = db.get(Business, user.business_id) if user.business_id else None
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        role=user.role,
        business_id=user.business_id,
        business=BusinessResponse.model_validate(business) if business else None,
    )


def _register_admin(data: RegisterRequest, db: Session) -> AuthResponse:
    business_id = None
    if data.business_name:
        business = Business(
            name=data.business_name,
            slug=slugify(data.business_name),
            registration_code=generate_registration_code(db),
        )
        db.add(business)
        db.flush()
        business_id = business.id

    user = User(
        email=data.email,
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        phone=data.phone,
        role=ADMIN_ROLE,
        business_id=business_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    if business_id is not None:
        get_or_create_settings(db, business_id)

    logger.info('Registered admin %s for business %s', user.id, business_id)
    return AuthResponse(token=jwt_handler.create_user_token(user), user=build_user_response(db, user))


def _register_customer(data: RegisterRequest, db: Session) -> AuthResponse:
    if not data.registration_code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Registration code is required for customer registration.',
        )

    business = db.query(Business).filter(
        Business.registration_code == data.registration_code.upper(),
    ).first()
    if business is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid registration code.')

    user = User(
        email=data.email,
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        phone=data.phone,
        role=CUSTOMER_ROLE,
        business_id=business.id,
    )
    db.add(user)
    db.flush()

    customer = Customer(
        business_id=business.id,
        user_id=user.id,
        full_name=data.full_name,
        email=data.email,
        phone=data.phone,
    )
    db.add(customer)
    db.commit()
    db.refresh(user)
    db.refresh(customer)

    logger.info('Registered customer %s for business %s', customer.id, business.id)
    return AuthResponse(
        token=jwt_handler.create_user_token(user),
        user=build_user_response(db, user),
        customer=CustomerSummary.model_validate(customer),
    )


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    try:
        if db.query(User.id).filter(User.email == data.email).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='User already exists.')

        if data.is_admin:
            return _register_admin(data, db)
        return _register_customer(data, db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Registration failed for %s', data.email)
        raise database_unavailable() from exc


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
        if user is None or not verify_password(data.password, user.hashed_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials.')

        response = AuthResponse(token=jwt_handler.create_user_token(user), user=build_user_response(db, user))
        if user.role == CUSTOMER_ROLE:
            customer = db.query(Customer).filter(Customer.user_id == user.id).first()
            if customer is not None:
                response.customer = CustomerSummary.model_validate(customer)
        return response
    except SQLAlchemyError as exc:
        logger.exception('Login failed for %s', data.email)
        raise database_unavailable() from exc
