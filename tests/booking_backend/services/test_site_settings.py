from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from sqlalchemy import event

from booking_backend.core import config
from booking_backend.models.site_settings import SiteSettings
from booking_backend.services.site_settings import (
    business_now,
    get_or_create_settings,
    is_valid_timezone,
    to_business_time,
)


def test_get_or_create_settings_reuses_existing_row(db, tenant) -> None:
    assert get_or_create_settings(db, tenant.business.id).id == tenant.settings.id


def test_get_or_create_settings_creates_defaults(db, tenant) -> None:
    db.delete(tenant.settings)
    db.commit()

    settings = get_or_create_settings(db, tenant.business.id)

    assert settings.timezone == config.DEFAULT_TIMEZONE
    assert settings.language == config.DEFAULT_LANGUAGE
    assert settings.working_hours == {}
    assert settings.auto_approve_bookings is False
    assert db.query(SiteSettings).filter(SiteSettings.business_id == tenant.business.id).count() == 1


def test_get_or_create_settings_returns_row_created_concurrently(session_factory, db, tenant) -> None:
    business_id = tenant.business.id
    db.delete(tenant.settings)
    db.commit()

    fired = []

    def create_competing_row(session, flush_context, instances) -> None:
        if fired:
            return
        fired.append(True)
        with session_factory() as other:
            other.add(SiteSettings(business_id=business_id, timezone='UTC', working_hours={}, theme={}))
            other.commit()

    event.listen(db, 'before_flush', create_competing_row)

    try:
        settings = get_or_create_settings(db, business_id)
    finally:
        event.remove(db, 'before_flush', create_competing_row)

    assert fired == [True]
    assert settings.timezone == 'UTC'
    assert db.query(SiteSettings).filter(SiteSettings.business_id == business_id).count() == 1


def test_is_valid_timezone() -> None:
    assert is_valid_timezone('Asia/Jerusalem')
    assert is_valid_timezone('UTC')
    assert not is_valid_timezone('Mars/Olympus')


def test_business_now_is_naive_local_time() -> None:
    now = business_now(SimpleNamespace(timezone='UTC'))
    utc_now = datetime.now(timezone.utc).replace(tzinfo=None)

    assert now.tzinfo is None
    assert abs(now - utc_now) < timedelta(minutes=1)


def test_business_now_falls_back_for_unknown_zone() -> None:
    now = business_now(SimpleNamespace(timezone='Mars/Olympus'))

    assert now.tzinfo is None
    assert abs(now - datetime.now()) < timedelta(minutes=1)


def test_to_business_time_converts_aware_values() -> None:
    settings = SimpleNamespace(timezone='Asia/Jerusalem')

    assert to_business_time(datetime(2030, 1, 15, 8, 0, tzinfo=timezone.utc), settings) == datetime(2030, 1, 15, 10, 0)
    assert to_business_time(datetime(2030, 7, 15, 8, 0, tzinfo=timezone.utc), settings) == datetime(2030, 7, 15, 11, 0)
    assert to_business_time(datetime(2030, 1, 15, 8, 0), settings) == datetime(2030, 1, 15, 8, 0)
