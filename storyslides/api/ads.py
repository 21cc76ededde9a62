from fastapi import APIRouter, Depends

from storyslides.dependencies.supabase import get_supabase_client
from storyslides.schemas import AdWatchedInput, ManageAdInput
from storyslides.services.ads_admin import manage_ad, mark_ad_watched, record_ad_click


router = APIRouter()


@router.post("/manage-ads")
async def manage_ads_endpoint(request: ManageAdInput, supabase = Depends(get_supabase_client)):
    """Create, update or delete an ad. Super admins and ad managers only."""
    ad_data = request.ad_data.model_dump() if request.ad_data else None
    return manage_ad(supabase, request.admin_id, request.action, request.ad_id, ad_data)


@router.post("/ads/{ad_id}/click")
async def ad_click_endpoint(ad_id: str, supabase = Depends(get_supabase_client)):
    record_ad_click(supabase, ad_id)
    return {"success": True}


@router.post("/ads/{ad_id}/watched")
async def ad_watched_endpoint(
    ad_id: str, request: AdWatchedInput, supabase = Depends(get_supabase_client)
):
    """Mark the reader's impression of this ad at this position as watched."""
    updated = mark_ad_watched(supabase, request.reader_id, ad_id, request.slide_position)
    return {"success": True, "updated": updated}
