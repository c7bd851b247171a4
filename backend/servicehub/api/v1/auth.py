import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.api.deps import get_current_user
from servicehub.core.database import get_db
from servicehub.core.security import create_access_token, get_password_hash, verify_password
from servicehub.models import User
from servicehub.services.db_service import DBService
from servicehub.services.serializers import user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


class SignupPayload(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class SigninPayload(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupPayload, db: AsyncSession = Depends(get_db)):
    """Register a new account and return a bearer token."""
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )

    db_service = DBService(db)
    email = payload.email.strip()
    if await db_service.get_user_by_email(email):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    try:
        user = await db_service.create_user({
            "email": email,
            "password": get_password_hash(payload.password),
            "name": payload.name.strip(),
        })
    except IntegrityError:
        # Lost a race against a concurrent signup for the same email
        await db.rollback()
        raise HTTPException(status_code=400, detail="User with this email already exists")

    logger.info(f"✅ User created: {user.id}")
    return {
        "message": "User created successfully",
        "user": user_to_dict(user),
        "token": create_access_token(user.id),
    }


@router.post("/signin")
async def signin(payload: SigninPayload, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = await DBService(db).get_user_by_email(payload.email.strip())
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return {
        "message": "Sign in successful",
        "user": user_to_dict(user),
        "token": create_access_token(user.id),
    }


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user"""
    return {"user": user_to_dict(current_user)}
