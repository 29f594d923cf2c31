from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from bus_tracking import config

# Tokens come from the auth service's login endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

ROLES = ("student", "driver", "admin")


class TokenData(BaseModel):
    username: Optional[str] = None
    role: Optional[str] = None
    id: Optional[int] = None
    name: Optional[str] = None


# Dependency to get the current user based on the token
async def get_current_user(token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        username: str = payload.get("sub")
        role: str = payload.get("role")
        if username is None or role not in ROLES:
            raise credentials_exception
        token_data = TokenData(username=username, role=role, id=payload.get("id"), name=payload.get("name"))
    except (JWTError, ValidationError):
        raise credentials_exception

    return token_data.model_dump()


def get_driver_user(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user["role"] != "driver":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to access this resource")
    if current_user.get("id") is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Driver ID not found in token")
    return current_user
