from datetime import datetime, timedelta, timezone

import jwt

from booking_backend.core import config


def create_access_token(subject: str, claims: dict | None = None, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {**(claims or {}), "sub": subject, "exp": expire, "iat": datetime.now(timezone.utc)}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def create_user_token(user) -> str:
    return create_access_token(
        subject=str(user.id),
        claims={"email": user.email, "role": user.role, "business_id": user.business_id},
    )


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
