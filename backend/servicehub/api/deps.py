from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from servicehub.core.database import get_db
from servicehub.core.security import decode_access_token, parse_bearer_token
from servicehub.models import User
from servicehub.services.db_service import DBService
from servicehub.services.realtime import RealtimeNotifier


async def resolve_token_user(db_service: DBService, token: Optional[str]) -> Optional[User]:
    """User behind a bearer token, shared by HTTP and WebSocket auth."""
    if not token:
        return None
    user_id = decode_access_token(token)
    if user_id is None:
        return None
    return await db_service.get_user(user_id)


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = parse_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    user = await resolve_token_user(DBService(db), token)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return user


def get_notifier(connection: HTTPConnection) -> Optional[RealtimeNotifier]:
    return getattr(connection.app.state, "notifier", None)
