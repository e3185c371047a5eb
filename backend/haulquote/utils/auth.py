from fastapi import Request, HTTPException
import httpx
import logging
import os
from typing import Optional, Dict, Any
import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

logger = logging.getLogger(__name__)


async def _verify_token_remotely(token: str) -> Optional[Dict[str, Any]]:
    """Ask Supabase Auth who the token belongs to"""
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{SUPABASE_URL}/auth/v1/user",
            headers={
                "Authorization": f"Bearer {token}",
                "apikey": SUPABASE_ANON_KEY
            }
        )

    if response.status_code != 200:
        logger.error(f"Failed to verify token via API: {response.status_code}")
        return None

    user_data = response.json()
    user_data['access_token'] = token
    return user_data


async def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a Supabase JWT locally, or through the Auth API when no JWT secret is configured"""
    try:
        SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")

        if not SUPABASE_JWT_SECRET:
            return await _verify_token_remotely(token)

        payload = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience="authenticated"
        )

        # Supabase puts the user id in 'sub'
        if 'sub' in payload and 'id' not in payload:
            payload['id'] = payload['sub']

        payload['access_token'] = token
        return payload

    except ExpiredSignatureError:
        logger.error("Token has expired")
        return None
    except InvalidTokenError as e:
        logger.error(f"Invalid token: {e}")
        return None
    except httpx.HTTPError as e:
        logger.error(f"Error verifying token: {e}")
        return None


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ")[1]


async def get_current_user(request: Request) -> Dict[str, Any]:
    """Dependency to get current user from request"""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    user = await verify_token(token)

    if not user:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token. Please refresh your session."
        )

    return user


async def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """Like get_current_user, but anonymous callers get None instead of a 401"""
    token = _bearer_token(request)
    if not token:
        return None
    return await verify_token(token)
