"""Best-effort audit trail in the activity_logs table."""
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from supabase import Client

from planforge.core.dependencies import get_client_ip

logger = logging.getLogger(__name__)


def log_activity(
    supabase: Client,
    user_id: str,
    action: str,
    metadata: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> None:
    """Insert an activity_logs row. Failures are logged and never reach the caller."""
    row = {
        "user_id": user_id,
        "action": action,
        "metadata": metadata or {},
    }
    if request is not None:
        row["ip_address"] = get_client_ip(request)
        row["user_agent"] = request.headers.get("user-agent")
    try:
        supabase.table("activity_logs").insert(row).execute()
    except Exception as e:
        logger.warning(f"Failed to log activity '{action}' for user {user_id}: {e}")
