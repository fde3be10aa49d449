from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from sqlalchemy.orm import Session

from salon_api.auth import jwt_handler
from salon_api.database import get_db
from salon_api.models.user import User

security = HTTPBearer()

SUPER_ADMIN_ROLE = "super_admin"


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = db.query(User).filter(
        User.email == email,
        User.is_active.is_(True),
        User.is_deleted.is_(False),
    ).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def is_staff(user: User) -> bool:
    return bool(user.is_practitioner) or user.role == SUPER_ADMIN_ROLE


def require_practitioner_self(current_user: User, practitioner_id: int, action: str) -> None:
    if current_user.role == SUPER_ADMIN_ROLE:
        return
    if not current_user.is_practitioner or current_user.id != practitioner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only the practitioner can {action}.",
        )
