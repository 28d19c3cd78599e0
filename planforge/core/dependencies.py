"""
Core dependencies for route protection and ownership checks
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from planforge.database.supabase_client import get_supabase
from planforge.modules.auth.service import AuthService
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Extract bearer token from the Authorization header"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Resolve the authenticated Supabase user for this request"""
    return auth_service.get_current_user(token)


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def check_project_access(
    project_id: str,
    user_data: dict,
    supabase: Client,
    require_owner: bool = False
) -> Dict[str, Any]:
    """Return the project row if the user owns it (or it is public and only read access is needed)."""
    result = supabase.table("projects")\
        .select("*")\
        .eq("id", project_id)\
        .maybe_single()\
        .execute()
    project = result.data if result else None
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    if project.get("owner_id") == user_data["id"] or project.get("user_id") == user_data["id"]:
        return project
    if not require_owner and project.get("is_public") and project.get("visibility_level") == "public":
        return project
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have access to this project"
    )
