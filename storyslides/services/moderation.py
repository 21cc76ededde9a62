"""
Admin moderation of stories, chapters, comments and users.

Every admin operation checks the caller against the ``admins`` table and
writes an audit row to ``moderation_logs``. Authors get a notification when
one of their stories or chapters is moderated.
"""

from typing import Any, Dict, Iterable, Optional

from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import AuthorizationError, InvalidRequestError, PersistenceError

logger = setup_logger(__name__)

AD_MANAGER_ROLES = ("super_admin", "ad_manager")

_TARGET_TABLES = {
    "story": "stories",
    "chapter": "chapters",
    "comment": "comments",
}

# (target_type, action) -> what the action does to the target row
_ACTIONS = {
    ("story", "approve"): ("update", {"status": "published"}, "Story approved and published"),
    ("story", "reject"): ("update", {"status": "rejected"}, "Story rejected"),
    ("story", "delete"): ("delete", None, "Story deleted"),
    ("chapter", "approve"): ("update", {"status": "published"}, "Chapter approved and published"),
    ("chapter", "reject"): ("update", {"status": "rejected"}, "Chapter rejected"),
    ("chapter", "delete"): ("delete", None, "Chapter deleted"),
    ("comment", "delete"): ("delete", None, "Comment deleted"),
    ("user", "suspend"): ("suspend", {"status": "suspended"}, "User suspended"),
}

_PAST_TENSE = {
    "approve": "approved",
    "reject": "rejected",
    "delete": "deleted",
    "suspend": "suspended",
}


def get_admin_role(supabase: Any, admin_id: str) -> Optional[str]:
    """Role of ``admin_id`` in the admins table, or None if it isn't an admin."""
    try:
        response = (
            supabase.table("admins")
            .select("role")
            .eq("user_id", admin_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Admin lookup failed for {admin_id}: {e}")
        return None
    rows = response.data or []
    return rows[0].get("role") if rows else None


def require_admin(supabase: Any, admin_id: str, roles: Optional[Iterable[str]] = None) -> str:
    """
    Raises:
        AuthorizationError: If ``admin_id`` is not an admin, or its role is
            not one of ``roles`` when given.
    """
    role = get_admin_role(supabase, admin_id)
    if role is None:
        raise AuthorizationError("Unauthorized: Admin access required", error_code="not_admin")
    if roles is not None and role not in tuple(roles):
        raise AuthorizationError("Unauthorized: Ad manager access required", error_code="role_denied")
    return role


def log_admin_action(
    supabase: Any,
    admin_id: str,
    action: str,
    target_type: str,
    target_id: str,
    notes: str = "",
) -> None:
    try:
        (
            supabase.table("moderation_logs")
            .insert({
                "admin_id": admin_id,
                "action": action,
                "target_id": target_id,
                "target_type": target_type,
                "notes": notes,
            })
            .execute()
        )
    except Exception as e:
        logger.error(f"Error logging moderation action {action} on {target_type} {target_id}: {e}")


def _fetch_author_target(supabase: Any, target_type: str, target_id: str) -> Optional[Dict[str, Any]]:
    """Author and title of a story/chapter, read before the action runs."""
    table = _TARGET_TABLES[target_type]
    try:
        response = (
            supabase.table(table)
            .select("author_id, title")
            .eq("id", target_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Could not load {target_type} {target_id} for notification: {e}")
        return None
    rows = response.data or []
    return rows[0] if rows else None


def notify_author(
    supabase: Any,
    target: Dict[str, Any],
    target_type: str,
    action: str,
    reason: Optional[str] = None,
) -> None:
    if not target.get("author_id"):
        return
    message = f'Your {target_type} "{target.get("title", "")}" has been {_PAST_TENSE[action]} by an admin'
    if reason:
        message += f": {reason}"
    try:
        (
            supabase.table("notifications")
            .insert({
                "user_id": target["author_id"],
                "type": "admin_update",
                "message": message,
                "seen": False,
            })
            .execute()
        )
    except Exception as e:
        logger.error(f"Error notifying author of {target_type}: {e}")


def moderate(
    supabase: Any,
    admin_id: str,
    action: str,
    target_type: str,
    target_id: str,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Apply a moderation action.

    Raises:
        AuthorizationError: If the caller is not an admin.
        InvalidRequestError: If the action does not apply to the target type.
        PersistenceError: If the action itself fails.
    """
    logger.info(f"Admin {admin_id} performing {action} on {target_type} {target_id}")
    require_admin(supabase, admin_id)

    rule = _ACTIONS.get((target_type, action))
    if rule is None:
        raise InvalidRequestError(
            f"Action '{action}' is not supported for {target_type}", error_code="invalid_action"
        )
    operation, values, message = rule

    target = None
    if target_type in ("story", "chapter"):
        target = _fetch_author_target(supabase, target_type, target_id)

    try:
        if operation == "suspend":
            supabase.table("profiles").update(values).eq("user_id", target_id).execute()
        elif operation == "update":
            supabase.table(_TARGET_TABLES[target_type]).update(values).eq("id", target_id).execute()
        else:
            supabase.table(_TARGET_TABLES[target_type]).delete().eq("id", target_id).execute()
    except Exception as e:
        logger.error(f"Moderation {action} on {target_type} {target_id} failed: {e}")
        raise PersistenceError(f"Failed to {action} {target_type}", stage="moderate") from e

    log_admin_action(supabase, admin_id, action, target_type, target_id, notes or reason or "")

    if target:
        notify_author(supabase, target, target_type, action, reason)

    logger.info(f"Completed moderation action: {action} on {target_type} {target_id}")
    return {"success": True, "message": message}
