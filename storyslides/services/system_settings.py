from datetime import datetime, timezone
from typing import Any, Dict, List

from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import InvalidRequestError, PersistenceError
from storyslides.services.ad_interleaver import ADS_FREQUENCY_KEY, LEADING_INT
from storyslides.services.moderation import log_admin_action, require_admin

logger = setup_logger(__name__)


def list_settings(supabase: Any) -> List[Dict[str, Any]]:
    try:
        response = supabase.table("system_settings").select("*").order("setting_key").execute()
    except Exception as e:
        logger.error(f"Failed to fetch system settings: {e}")
        raise PersistenceError("Failed to fetch settings", stage="list_settings") from e
    return response.data or []


def validate_setting(key: str, value: str) -> str:
    """``ads_frequency`` must be a whole number >= 0; 0 turns ads off."""
    value = value.strip()
    if key == ADS_FREQUENCY_KEY:
        match = LEADING_INT.match(value)
        if not match or match.group(1) != value or int(value) < 0:
            raise InvalidRequestError(
                f"{ADS_FREQUENCY_KEY} must be a whole number >= 0", error_code="invalid_setting"
            )
    return value


def update_setting(supabase: Any, admin_id: str, key: str, value: str) -> Dict[str, Any]:
    """
    Raises:
        AuthorizationError: If the caller is not an admin.
        InvalidRequestError: If the value is not valid for the key.
        PersistenceError: If the upsert fails.
    """
    require_admin(supabase, admin_id)
    value = validate_setting(key, value)

    try:
        response = (
            supabase.table("system_settings")
            .upsert(
                {
                    "setting_key": key,
                    "value": value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
                on_conflict="setting_key",
            )
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to update setting {key}: {e}")
        raise PersistenceError("Failed to update setting", stage="update_setting") from e

    log_admin_action(supabase, admin_id, "setting_update", "setting", key, f"{key}={value}")
    logger.info(f"Admin {admin_id} set {key}={value}")
    rows = response.data or []
    return rows[0] if rows else {"setting_key": key, "value": value}
