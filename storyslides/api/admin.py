from fastapi import APIRouter, Depends

from storyslides.dependencies.supabase import get_supabase_client
from storyslides.schemas import ModerationInput, UpdateSettingInput
from storyslides.services.moderation import moderate
from storyslides.services.system_settings import list_settings, update_setting


router = APIRouter()


@router.post("/admin-moderate")
async def admin_moderate_endpoint(request: ModerationInput, supabase = Depends(get_supabase_client)):
    """Approve, reject or delete content, or suspend a user."""
    return moderate(
        supabase,
        request.admin_id,
        request.action,
        request.target_type,
        request.target_id,
        reason=request.reason,
        notes=request.notes,
    )


@router.get("/system-settings")
async def get_system_settings(supabase = Depends(get_supabase_client)):
    return {"settings": list_settings(supabase)}


@router.put("/system-settings/{key}")
async def put_system_setting(
    key: str, request: UpdateSettingInput, supabase = Depends(get_supabase_client)
):
    """Admin upsert of one setting, e.g. ``ads_frequency``."""
    setting = update_setting(supabase, request.admin_id, key, request.value)
    return {"success": True, "setting": setting}
