from typing import Annotated
from fastapi import Depends, Request
from app.common.schemas import ActingUser


def get_acting_user(request: Request) -> ActingUser:
    """Usuario puesto en request.state por ActingUserMiddleware."""
    acting_user = getattr(request.state, "acting_user", None)
    if acting_user is None:
        return ActingUser()
    return acting_user


acting_user_dependency = Annotated[ActingUser, Depends(get_acting_user)]
