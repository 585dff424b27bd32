"""REST routes for users and login."""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

from onduty.database import get_db
from onduty.models.user import User, UserRole
from onduty.schemas import LoginPayload, UserCreate, UserOut, UserUpdate
from onduty.services.auth_service import AuthService


router = APIRouter(prefix="/users", tags=["users"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])


def serialize(user: User) -> dict:
    # UserOut never carries the password hash
    return UserOut.model_validate(user).to_wire()


@router.get("")
async def list_users(
    role: Optional[UserRole] = Query(None),
    db: Session = Depends(get_db)
):
    auth_service = AuthService(db)
    return JSONResponse(content=[serialize(u) for u in auth_service.list_users(role=role)])


@router.get("/{user_id}")
async def get_user(user_id: str, db: Session = Depends(get_db)):
    auth_service = AuthService(db)
    return JSONResponse(content=serialize(auth_service.get_user(user_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user.

    Returns 400 with "Email already used" when the email is taken.
    """
    auth_service = AuthService(db)
    user = auth_service.register_user(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        user_id=payload.id
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=serialize(user))


@router.put("/{user_id}")
async def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    auth_service = AuthService(db)
    user = auth_service.update_user(
        user_id,
        name=payload.name,
        email=payload.email,
        password=payload.password
    )
    return JSONResponse(content=serialize(user))


@router.delete("/{user_id}")
async def delete_user(user_id: str, db: Session = Depends(get_db)):
    auth_service = AuthService(db)
    auth_service.delete_user(user_id)
    return JSONResponse(content={"message": "Deleted"})


@auth_router.post("/login")
async def login(payload: LoginPayload, db: Session = Depends(get_db)):
    """Check credentials and return the user. No session is issued."""
    auth_service = AuthService(db)
    return JSONResponse(content=serialize(auth_service.authenticate(payload.email, payload.password)))
