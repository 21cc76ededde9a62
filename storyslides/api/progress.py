from fastapi import APIRouter, Depends

from storyslides.dependencies.supabase import get_supabase_client
from storyslides.schemas import TrackProgressInput
from storyslides.services.progress_tracker import track_progress


router = APIRouter()


@router.post("/track-progress")
async def track_progress_endpoint(
    request: TrackProgressInput, supabase = Depends(get_supabase_client)
):
    """Record a reader's furthest slide in a chapter; completion bumps view counters."""
    data = track_progress(
        supabase,
        request.reader_id,
        request.novel_id,
        request.chapter_id,
        request.slide_number,
        request.completed,
    )
    return {"success": True, "data": data}
