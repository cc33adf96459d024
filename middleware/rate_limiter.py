from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from jose import jwt, JWTError
from core.config import settings

def get_caller_id(request: Request):
    """Rate limit per identity-provider subject, per client address otherwise."""
    token = request.headers.get("Authorization")
    if token:
        try:
            token = token.replace("Bearer ", "")
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
            subject = payload.get("sub")
            if subject:
                return str(subject)
        except JWTError:
            # Invalid tokens are rejected by the auth dependency, limit by address here
            pass

    return get_remote_address(request)

limiter = Limiter(
    key_func=get_caller_id,
    default_limits=["200/hour"],
    enabled=settings.ENV != "testing"
)
