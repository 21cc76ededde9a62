"""
Ad management and engagement tracking.
"""

from datetime import date
from typing import Any, Dict, Optional

from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import InvalidRequestError, PersistenceError
from storyslides.services.moderation import AD_MANAGER_ROLES, log_admin_action, require_admin

logger = setup_logger(__name__)

AD_ACTIONS = ("create", "update", "delete")


def _ad_row(ad_data: Dict[str, Any]) -> Dict[str, Any]:
    start, end = ad_data["start_date"], ad_data["end_date"]
    if isinstance(start, date) and isinstance(end, date) and end < start:
        raise InvalidRequestError("endDate must not be before startDate", error_code="invalid_window")
    return {
        "video_url": ad_data["video_url"],
        "start_date": str(start),
        "end_date": str(end),
    }


def _first(response: Any) -> Optional[Dict[str, Any]]:
    rows = response.data or []
    return rows[0] if rows else None


def manage_ad(
    supabase: Any,
    admin_id: str,
    action: str,
    ad_id: Optional[str] = None,
    ad_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create, update or delete an ad on behalf of an ad manager.

    ``ad_data`` holds ``video_url``, ``start_date`` and ``end_date``.

    Raises:
        AuthorizationError: If the caller is not a super admin or ad manager.
        InvalidRequestError: On an unknown action or a missing ad id / payload.
        PersistenceError: If the store rejects the write.
    """
    require_admin(supabase, admin_id, roles=AD_MANAGER_ROLES)

    if action not in AD_ACTIONS:
        raise InvalidRequestError("Invalid action", error_code="invalid_action")
    if action == "create" and not ad_data:
        raise InvalidRequestError("Ad data required for create action")
    if action == "update" and not (ad_id and ad_data):
        raise InvalidRequestError("Ad ID and data required for update action")
    if action == "delete" and not ad_id:
        raise InvalidRequestError("Ad ID required for delete action")

    try:
        if action == "create":
            row = {**_ad_row(ad_data), "impressions": 0, "clicks": 0}
            data = _first(supabase.table("ads").insert(row).execute())
            message = "Ad created successfully"
        elif action == "update":
            data = _first(supabase.table("ads").update(_ad_row(ad_data)).eq("id", ad_id).execute())
            message = "Ad updated successfully"
        else:
            supabase.table("ads").delete().eq("id", ad_id).execute()
            data = None
            message = "Ad deleted successfully"
    except InvalidRequestError:
        raise
    except Exception as e:
        logger.error(f"Error during ad {action}: {e}")
        raise PersistenceError(f"Failed to {action} ad", stage=f"ad_{action}") from e

    log_admin_action(
        supabase,
        admin_id,
        f"ad_{action}",
        "ad",
        ad_id or (data or {}).get("id") or "new",
        f"{action} ad operation",
    )

    logger.info(f"Completed ad {action} by admin {admin_id}")
    return {"success": True, "message": message, "data": data}


def record_ad_click(supabase: Any, ad_id: str) -> None:
    try:
        supabase.rpc("increment_ad_clicks", {"ad_id": ad_id}).execute()
    except Exception as e:
        logger.error(f"Failed to increment clicks for ad {ad_id}: {e}")
        raise PersistenceError("Failed to record ad click", stage="increment_clicks") from e


def mark_ad_watched(supabase: Any, reader_id: str, ad_id: str, slide_position: int) -> int:
    """Flag the reader's impression rows for this ad and position as watched."""
    try:
        response = (
            supabase.table("ad_logs")
            .update({"watched": True})
            .eq("reader_id", reader_id)
            .eq("ad_id", ad_id)
            .eq("slide_position", slide_position)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to mark ad {ad_id} watched for reader {reader_id}: {e}")
        raise PersistenceError("Failed to mark ad watched", stage="mark_watched") from e
    return len(response.data or [])
