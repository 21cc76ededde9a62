from typing import Optional

from fastapi import APIRouter, Depends, Query

from storyslides.dependencies.supabase import get_supabase_client
from storyslides.services.reader_feed import get_reader_feed
from storyslides.services.writer_analytics import get_writer_analytics


router = APIRouter()


@router.get("/get-reader-feed")
async def reader_feed_endpoint(
    reader_id: Optional[str] = Query(default=None, alias="readerId"),
    genre: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: str = Query(default="popular", alias="sortBy"),
    supabase = Depends(get_supabase_client),
):
    """Published stories for discovery, with the reader's progress and likes."""
    return get_reader_feed(supabase, reader_id, genre, limit, offset, sort_by)


@router.get("/get-writer-analytics")
async def writer_analytics_endpoint(
    writer_id: str = Query(..., alias="writerId", min_length=1),
    story_id: Optional[str] = Query(default=None, alias="storyId"),
    time_range: str = Query(default="30d", alias="timeRange"),
    supabase = Depends(get_supabase_client),
):
    return get_writer_analytics(supabase, writer_id, story_id, time_range)
