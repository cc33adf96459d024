from core.database import SessionLocal
from typing import Annotated
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from starlette import status
from core.config import settings
from core.exceptions import PermissionDeniedError
from services.payment_gateway import RazorpayGateway, get_gateway

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


bearer_scheme = HTTPBearer(auto_error=False)

def get_current_user(credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]):
    """
    Decodes the identity provider's bearer token into the caller context
    handed to every route: {"user_id", "user_role"}.
    """
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id: str = payload.get("sub")
        user_role: str = payload.get("role")

        if user_id is None or user_role is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        return {"user_id": str(user_id), "user_role": user_role}

    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Could not validate credentials.")


user_dependency = Annotated[dict, Depends(get_current_user)]


def get_current_seller(user: user_dependency):
    if user.get("user_role") not in ("seller", "admin"):
        raise PermissionDeniedError("Seller account required")
    return user

seller_dependency = Annotated[dict, Depends(get_current_seller)]


def get_current_delivery_partner(user: user_dependency):
    if user.get("user_role") not in ("delivery", "admin"):
        raise PermissionDeniedError("Delivery partner account required")
    return user

delivery_dependency = Annotated[dict, Depends(get_current_delivery_partner)]


def ensure_acting_for(user: dict, subject_id: str):
    """Customers and sellers may only act as themselves; admins may act for anyone."""
    if user.get("user_role") == "admin":
        return
    if user.get("user_id") != str(subject_id):
        raise PermissionDeniedError()


def get_payment_gateway() -> RazorpayGateway:
    return get_gateway()

gateway_dependency = Annotated[RazorpayGateway, Depends(get_payment_gateway)]
