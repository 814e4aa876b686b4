"""
Middleware para el contexto del usuario que actúa
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import logging

from app.common.schemas import ActingUser
from app.core.config import settings

logger = logging.getLogger(__name__)


class ActingUserMiddleware(BaseHTTPMiddleware):
    """
    Middleware that extracts the acting user from X-User-Id / X-User-Name
    headers and sets it on request.state for use in endpoint handlers.

    There is no authentication here; the headers only identify who
    registered each invoice, payment or stock movement.
    """

    async def dispatch(self, request: Request, call_next):
        user_id = request.headers.get("X-User-Id")
        user_name = request.headers.get("X-User-Name") or settings.DEFAULT_USER_NAME

        request.state.acting_user = ActingUser(
            id=user_id.strip() if user_id else None,
            nombre=user_name.strip(),
        )

        logger.debug(
            f"Request to {request.url.path} acting as {request.state.acting_user.nombre}"
        )

        response = await call_next(request)

        if user_id:
            response.headers["X-Acting-User"] = user_id

        return response
