"""
FastAPI dependencies: clock, caller identity and admin guard

Identity is resolved upstream (gateway or session layer); the caller's id
arrives in the X-User-Id header.
"""
import hmac
from typing import Optional

from fastapi import Header, HTTPException

from square_puzzles import config
from square_puzzles.clock import Clock, SystemClock

_system_clock = SystemClock()


def get_clock() -> Clock:
    return _system_clock


async def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None


async def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    user_id = await get_optional_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authorized")
    return user_id


async def require_admin(
    x_admin_token: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> str:
    """Check the admin token and return the acting admin's id"""
    token = config.ADMIN_TOKEN
    if not token or not x_admin_token or not hmac.compare_digest(x_admin_token.encode(), token.encode()):
        raise HTTPException(status_code=403, detail="Admin access required")
    return (x_user_id or "").strip() or "admin"
