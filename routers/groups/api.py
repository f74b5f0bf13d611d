from fastapi import APIRouter

from . import groups

router = APIRouter()
router.include_router(groups.router)
