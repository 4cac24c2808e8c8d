import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from booking_backend.auth import jwt_handler
from booking_backend.database import get_db
from booking_backend.models.customer import Customer
from booking_backend.models.user import User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.get(User, int(subject))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_business(current_user: User = Depends(get_current_user)) -> User:
    if current_user.business_id is None:
        raise HTTPException(status_code=403, detail="User is not associated with a business")
    return current_user


def require_admin(current_user: User = Depends(require_business)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


def get_customer_profile(db: Session, user: User) -> Customer:
    customer = db.query(Customer).filter(
        Customer.user_id == user.id,
        Customer.business_id == user.business_id,
    ).first()
    if customer is None:
        raise HTTPException(status_code=403, detail="No customer profile for this user")
    return customer
