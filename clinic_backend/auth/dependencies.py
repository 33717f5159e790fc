from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.models.user import User
from clinic_backend.routes.dependencies import get_db

security = HTTPBearer()


def get_current_staff(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Staff member behind the bearer token. Staff routes act on their clinic only."""
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if user.clinic_id is None:
        raise HTTPException(status_code=403, detail="User has no clinic assigned")
    return user


def require_clinic_member(user: User, clinic_id: int) -> None:
    if user.clinic_id != clinic_id:
        raise HTTPException(status_code=403, detail="You can only manage your own clinic.")
