import logging

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import ChatError
from core.users import get_user_by_id

logger = logging.getLogger(__name__)


def _extract_user_id(request: Request) -> str:
    auth_header = request.headers.get("authorization") or request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return (request.headers.get("X-User-ID") or "").strip()


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Resolves the caller from `Authorization: Bearer <user id>` or `X-User-ID`.
    The identifier is the one returned by POST /session.
    """
    user_id = _extract_user_id(request)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization token missing.",
        )
    user = get_user_by_id(db, user_id=user_id)
    if not user:
        logger.info(f"Rejected request for unknown user id {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identifier.",
        )
    return user


async def chat_error_handler(request: Request, exc: ChatError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def install_error_handlers(app: FastAPI):
    app.add_exception_handler(ChatError, chat_error_handler)
