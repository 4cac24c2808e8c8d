import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from booking_backend.routes.review_routes import (
    CreateReviewRequest,
    UpdateReviewRequest,
    create_review,
    delete_review,
    get_review,
    list_reviews,
    update_review,
)


@pytest.mark.parametrize('rating', [0, 6])
def test_rating_must_be_between_one_and_five(rating: int) -> None:
    with pytest.raises(ValidationError):
        CreateReviewRequest(rating=rating)


def test_update_review_request_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        UpdateReviewRequest(status='hidden')


def test_customer_review_waits_for_moderation(db, tenant) -> None:
    review = create_review(CreateReviewRequest(rating=5, comment=' Great cut '), current_user=tenant.customer_user, db=db)

    assert review.status == 'pending'
    assert review.comment == 'Great cut'
    assert review.customer_id == tenant.customer.id
    assert list_reviews(current_user=tenant.customer_user, db=db) == []
    assert [item.id for item in list_reviews(current_user=tenant.admin, db=db)] == [review.id]


def test_admin_approves_review(db, tenant) -> None:
    review = create_review(CreateReviewRequest(rating=4), current_user=tenant.customer_user, db=db)

    approved = update_review(review.id, UpdateReviewRequest(status='approved'), current_user=tenant.admin, db=db)

    assert approved.status == 'approved'
    assert [item.id for item in list_reviews(current_user=tenant.customer_user, db=db)] == [review.id]


def test_customer_cannot_moderate(db, tenant) -> None:
    review = create_review(CreateReviewRequest(rating=4), current_user=tenant.customer_user, db=db)

    with pytest.raises(HTTPException) as exception_info:
        update_review(review.id, UpdateReviewRequest(status='approved'), current_user=tenant.customer_user, db=db)

    assert exception_info.value.status_code == 403


def test_customer_edit_resets_moderation(db, tenant) -> None:
    review = create_review(CreateReviewRequest(rating=4), current_user=tenant.customer_user, db=db)
    update_review(review.id, UpdateReviewRequest(status='approved'), current_user=tenant.admin, db=db)

    edited = update_review(review.id, UpdateReviewRequest(rating=2), current_user=tenant.customer_user, db=db)

    assert edited.rating == 2
    assert edited.status == 'pending'


def test_admin_review_requires_customer_of_same_business(db, tenant, other_tenant) -> None:
    with pytest.raises(HTTPException) as missing:
        create_review(CreateReviewRequest(rating=5), current_user=tenant.admin, db=db)
    with pytest.raises(HTTPException) as foreign:
        create_review(CreateReviewRequest(rating=5, customer_id=other_tenant.customer.id), current_user=tenant.admin, db=db)

    assert missing.value.status_code == 400
    assert foreign.value.status_code == 404


def test_reviews_are_scoped_to_business(db, tenant, other_tenant) -> None:
    review = create_review(CreateReviewRequest(rating=5), current_user=tenant.customer_user, db=db)

    with pytest.raises(HTTPException) as exception_info:
        get_review(review.id, current_user=other_tenant.admin, db=db)

    assert exception_info.value.status_code == 404


def test_customer_deletes_own_review(db, tenant) -> None:
    review = create_review(CreateReviewRequest(rating=3), current_user=tenant.customer_user, db=db)

    delete_review(review.id, current_user=tenant.customer_user, db=db)

    assert list_reviews(current_user=tenant.admin, db=db) == []
