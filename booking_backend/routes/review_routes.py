import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_backend.auth.dependencies import get_customer_profile, require_business
from booking_backend.core.errors import database_unavailable
from booking_backend.database import get_db
from booking_backend.models.customer import Customer
from booking_backend.models.review import REVIEW_STATUSES, Review
from booking_backend.models.user import User

router = APIRouter(tags=['reviews'])
logger = logging.getLogger(__name__)


def _validate_rating(value: int | None) -> int | None:
    if value is not None and not 1 <= value <= 5:
        raise ValueError('Rating must be between 1 and 5.')
    return value


def _normalize_comment(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class CreateReviewRequest(BaseModel):
    rating: int
    comment: str | None = None
    customer_id: int | None = None

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, value: int | None) -> int | None:
        return _validate_rating(value)

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        return _normalize_comment(value)


class UpdateReviewRequest(BaseModel):
    rating: int | None = None
    comment: str | None = None
    status: str | None = None

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, value: int | None) -> int | None:
        return _validate_rating(value)

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        return _normalize_comment(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in REVIEW_STATUSES:
            raise ValueError('Invalid review status.')
        return normalized


class ReviewResponse(BaseModel):
    id: int
    business_id: int
    customer_id: int
    rating: int
    comment: str | None = None
    status: str

    class Config:
        from_attributes = True


def get_visible_review(db: Session, review_id: int, user: User) -> Review:
    query = db.query(Review).filter(
        Review.id == review_id,
        Review.business_id == user.business_id,
    )
    if not user.is_admin:
        query = query.filter(Review.customer_id == get_customer_profile(db, user).id)

    review = query.first()
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Review not found.')
    return review


@router.get('', response_model=list[ReviewResponse])
def list_reviews(current_user: User = Depends(require_business), db: Session = Depends(get_db)):
    try:
        query = db.query(Review).filter(Review.business_id == current_user.business_id)
        if not current_user.is_admin:
            query = query.filter(Review.status == 'approved')
        return query.order_by(Review.created_at.desc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to list reviews')
        raise database_unavailable() from exc


@router.get('/{review_id}', response_model=ReviewResponse)
def get_review(review_id: int, current_user: User = Depends(require_business), db: Session = Depends(get_db)):
    return get_visible_review(db, review_id, current_user)


@router.post('', response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    data: CreateReviewRequest,
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    if current_user.is_admin:
        if data.customer_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='A customer is required.')
        customer = db.query(Customer).filter(
            Customer.id == data.customer_id,
            Customer.business_id == current_user.business_id,
        ).first()
        if customer is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Customer not found.')
    else:
        customer = get_customer_profile(db, current_user)

    try:
        review = Review(
            business_id=current_user.business_id,
            customer_id=customer.id,
            user_id=current_user.id,
            rating=data.rating,
            comment=data.comment,
            status='pending',
        )
        db.add(review)
        db.commit()
        db.refresh(review)
        return review
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create review')
        raise database_unavailable() from exc


@router.put('/{review_id}', response_model=ReviewResponse)
def update_review(
    review_id: int,
    data: UpdateReviewRequest,
    current_user: User = Depends(require_business),
    db: Session = Depends(get_db),
):
    review = get_visible_review(db, review_id, current_user)

    if data.status is not None and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Only admins can moderate reviews.')

    try:
        if data.rating is not None:
            review.rating = data.rating
        if data.comment is not None:
            review.comment = data.comment
        if data.status is not None:
            review.status = data.status
        elif not current_user.is_admin:
            # Edited reviews go back through moderation.
            review.status = 'pending'
        db.commit()
        db.refresh(review)
        return review
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update review %s', review_id)
        raise database_unavailable() from exc


@router.delete('/{review_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_review(review_id: int, current_user: User = Depends(require_business), db: Session = Depends(get_db)):
    review = get_visible_review(db, review_id, current_user)
    try:
        db.delete(review)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete review %s', review_id)
        raise database_unavailable() from exc
