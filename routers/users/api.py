from fastapi import APIRouter

from . import session, users

router = APIRouter()
router.include_router(session.router)
router.include_router(users.router)
