from dataclasses import dataclass

from fastapi import HTTPException, Request, status


@dataclass
class CurrentUser:
    id: int
    username: str
    active: bool


def get_current_user(request: Request) -> CurrentUser:
    # Every signed-in user sees the same single-tenant business data.
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if not user.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")
    return user
