from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from booking_backend.models.customer import Customer
from booking_backend.models.review import Review
from booking_backend.routes.customer_routes import (
    CustomerRequest,
    UpdateCustomerRequest,
    create_customer,
    delete_customer,
    get_customer,
    list_customers,
    update_customer,
)
from booking_backend.scheduling import booking


def test_customer_request_normalizes_contact_details() -> None:
    request = CustomerRequest(full_name=' Avi Levi ', email=' Avi@Mail.COM ', phone='  ')

    assert request.full_name == 'Avi Levi'
    assert request.email == 'avi@mail.com'
    assert request.phone is None


def test_customer_request_email_is_optional_but_validated() -> None:
    assert CustomerRequest(full_name='Avi Levi', email='  ').email is None
    with pytest.raises(ValidationError):
        CustomerRequest(full_name='Avi Levi', email='avi@mail..com')


def test_update_customer_request_rejects_blank_name() -> None:
    assert UpdateCustomerRequest(phone='050').full_name is None
    with pytest.raises(ValidationError):
        UpdateCustomerRequest(full_name='  ')


def test_create_and_list_customers(db, tenant, other_tenant) -> None:
    created = create_customer(CustomerRequest(full_name='Avi Levi', phone='050-0000000'), current_user=tenant.admin, db=db)

    listed = list_customers(current_user=tenant.admin, db=db)

    assert created.business_id == tenant.business.id
    assert created.user_id is None
    assert [customer.full_name for customer in listed] == ['Avi Levi', 'Salon One Client']
    assert [customer.full_name for customer in list_customers(current_user=other_tenant.admin, db=db)] == [
        'Salon Two Client',
    ]


def test_customer_counts_appointments(db, tenant) -> None:
    booking.create_appointment(
        db,
        business_id=tenant.business.id,
        service_id=tenant.haircut.id,
        customer_id=tenant.customer.id,
        start_time=datetime(2030, 1, 15, 10, 0),
        now=datetime(2030, 1, 14, 8, 0),
    )

    response = get_customer(tenant.customer.id, current_user=tenant.admin, db=db)

    assert response.appointment_count == 1
    assert response.review_count == 0


def test_customer_of_other_business_is_not_found(db, tenant, other_tenant) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_customer(tenant.customer.id, current_user=other_tenant.admin, db=db)

    assert exception_info.value.status_code == 404


def test_update_customer(db, tenant) -> None:
    response = update_customer(
        tenant.customer.id,
        UpdateCustomerRequest(phone='052-7654321'),
        current_user=tenant.admin,
        db=db,
    )

    assert response.phone == '052-7654321'
    assert response.full_name == 'Salon One Client'


def test_delete_customer_removes_reviews(db, tenant) -> None:
    db.add(Review(business_id=tenant.business.id, customer_id=tenant.customer.id, rating=5))
    db.commit()

    delete_customer(tenant.customer.id, current_user=tenant.admin, db=db)

    assert db.query(Customer).filter(Customer.business_id == tenant.business.id).count() == 0
    assert db.query(Review).count() == 0


def test_delete_customer_with_appointments_is_refused(db, tenant) -> None:
    booking.create_appointment(
        db,
        business_id=tenant.business.id,
        service_id=tenant.haircut.id,
        customer_id=tenant.customer.id,
        start_time=datetime(2030, 1, 15, 10, 0),
        now=datetime(2030, 1, 14, 8, 0),
    )

    with pytest.raises(HTTPException) as exception_info:
        delete_customer(tenant.customer.id, current_user=tenant.admin, db=db)

    assert exception_info.value.status_code == 409
