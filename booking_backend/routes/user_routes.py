import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth.dependencies import get_current_user
from booking_backend.core.errors import database_unavailable
from booking_backend.database import get_db
from booking_backend.models.user import User
from booking_backend.routes.auth_routes import UserResponse, build_user_response

router = APIRouter(tags=['users'])
logger = logging.getLogger(__name__)


class UpdateProfileRequest(BaseModel):
    full_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None

    @field_validator('full_name', 'phone')
    @classmethod
    def strip_value(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None


@router.get('/me', response_model=UserResponse)
def read_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return build_user_response(db, current_user)


@router.put('/me', response_model=UserResponse)
def update_me(
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        if data.email and data.email != current_user.email:
            taken = db.query(User.id).filter(User.email == data.email, User.id != current_user.id).first()
            if taken:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email is already in use.')
            current_user.email = data.email

        if data.full_name:
            current_user.full_name = data.full_name
        if data.phone is not None:
            current_user.phone = data.phone or None

        db.commit()
        db.refresh(current_user)
        return build_user_response(db, current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update user %s', current_user.id)
        raise database_unavailable() from exc
