import hashlib
import logging
import time
from supabase import Client
from planforge.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from fastapi import HTTPException
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# sha256(token) -> (user dict, monotonic expiry)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


def _cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _cached_user(token: str) -> Optional[Dict[str, Any]]:
    key = _cache_key(token)
    entry = _AUTH_USER_CACHE.get(key)
    if entry is None:
        return None
    user_data, expiry = entry
    if time.monotonic() >= expiry:
        _AUTH_USER_CACHE.pop(key, None)
        return None
    return user_data


def _remember_user(token: str, user_data: Dict[str, Any]) -> None:
    if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
        _AUTH_USER_CACHE[_cache_key(token)] = (user_data, time.monotonic() + _AUTH_CACHE_TTL_SEC)


def _user_dict(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
        "app_metadata": user.app_metadata or {},
    }


class AuthService:
    """Thin wrapper over Supabase Auth; accounts never touch application tables."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        metadata = {"full_name": register_data.full_name} if register_data.full_name else {}
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {"data": metadata},
            })
        except Exception as e:
            message = str(e).lower()
            if "already registered" in message or "already exists" in message:
                raise HTTPException(status_code=400, detail="User already exists")
            logger.error(f"Registration failed for {register_data.email}: {e}")
            raise HTTPException(status_code=500, detail=f"Registration failed: {e}")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")
        logger.info(f"Registered user {auth_response.user.id}")
        return RegisterResponse(
            user_id=auth_response.user.id,
            email=auth_response.user.email or register_data.email,
            message="User registered successfully",
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password,
            })
        except Exception as e:
            message = str(e).lower()
            if "invalid" in message or "credentials" in message:
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {e}")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return TokenResponse(
            access_token=auth_response.session.access_token,
            refresh_token=getattr(auth_response.session, "refresh_token", None),
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email,
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to its Supabase user, cached for a minute per token"""
        cached = _cached_user(token)
        if cached is not None:
            return cached
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            message = str(e)
            if "JWT" in message or "expired" in message.lower() or "invalid" in message.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        user_data = _user_dict(user_response.user)
        _remember_user(token, user_data)
        return user_data

    def logout(self, token: str) -> bool:
        _AUTH_USER_CACHE.pop(_cache_key(token), None)
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
