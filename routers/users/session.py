from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.db import get_db

from .schemas import LoginRequest, LoginResponse
from .service import login as service_login

router = APIRouter(tags=["Session"])


@router.post("/session", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Log in with a username. The user is created if it does not exist yet."""
    return service_login(db, name=request.name)
