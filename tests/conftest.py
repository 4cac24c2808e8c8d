import os
from types import SimpleNamespace

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from booking_backend.database import Base  # noqa: E402
from booking_backend.models.appointment import Appointment  # noqa: E402,F401
from booking_backend.models.business import Business  # noqa: E402
from booking_backend.models.customer import Customer  # noqa: E402
from booking_backend.models.review import Review  # noqa: E402,F401
from booking_backend.models.service import Service  # noqa: E402
from booking_backend.models.site_settings import SiteSettings  # noqa: E402
from booking_backend.models.user import ADMIN_ROLE, CUSTOMER_ROLE, User  # noqa: E402


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'booking.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def create_tenant(db, name: str, code: str) -> SimpleNamespace:
    business = Business(name=name, slug=name.lower().replace(' ', '-'), registration_code=code)
    db.add(business)
    db.flush()

    admin = User(
        email=f'owner@{code.lower()}.co.il',
        hashed_password='unused',
        full_name=f'{name} Owner',
        role=ADMIN_ROLE,
        business_id=business.id,
    )
    customer_user = User(
        email=f'client@{code.lower()}.co.il',
        hashed_password='unused',
        full_name=f'{name} Client',
        role=CUSTOMER_ROLE,
        business_id=business.id,
    )
    db.add_all([admin, customer_user])
    db.flush()

    customer = Customer(
        business_id=business.id,
        user_id=customer_user.id,
        full_name=customer_user.full_name,
        email=customer_user.email,
    )
    haircut = Service(business_id=business.id, name='Haircut', duration_minutes=30, price=80)
    coloring = Service(business_id=business.id, name='Coloring', duration_minutes=60, price=200)
    settings = SiteSettings(
        business_id=business.id,
        working_hours={},
        timezone='UTC',
        language='he',
        theme={},
        auto_approve_bookings=False,
    )
    db.add_all([customer, haircut, coloring, settings])
    db.commit()

    return SimpleNamespace(
        business=business,
        admin=admin,
        customer_user=customer_user,
        customer=customer,
        haircut=haircut,
        coloring=coloring,
        settings=settings,
    )


@pytest.fixture
def tenant(db):
    return create_tenant(db, 'Salon One', 'SALON1')


@pytest.fixture
def other_tenant(db):
    return create_tenant(db, 'Salon Two', 'SALON2')
