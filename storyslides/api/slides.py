from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from storyslides.core.logger_config import setup_logger
from storyslides.dependencies.supabase import get_async_db_pool, get_supabase_client
from storyslides.schemas import SplitChapterInput
from storyslides.services.ad_interleaver import get_slides_with_ads, log_ad_impression
from storyslides.services.segmenter import segment_chapter


router = APIRouter()
logger = setup_logger(__name__)


@router.post("/split-chapter")
async def split_chapter_endpoint(
    request: SplitChapterInput,
    pool = Depends(get_async_db_pool),
    supabase = Depends(get_supabase_client),
):
    """
    Segment chapter text into slides, replacing the chapter's existing slides.

    A failed slide replacement is a 500; a failed chapter counter update is
    only logged and the created slides are still returned.
    """
    result = await segment_chapter(
        pool, supabase, request.chapter_id, request.text, request.word_limit
    )
    if not result.metadata_updated:
        logger.warning(f"Chapter {request.chapter_id} slides saved but counts not updated")

    return {
        "success": True,
        "slideCount": len(result.slides),
        "slides": [slide.as_row() for slide in result.slides],
    }


@router.get("/get-slides-with-ads")
async def get_slides_with_ads_endpoint(
    background_tasks: BackgroundTasks,
    chapter_id: str = Query(..., alias="chapterId", min_length=1),
    reader_id: Optional[str] = Query(default=None, alias="readerId"),
    supabase = Depends(get_supabase_client),
):
    """Chapter slides with ad entries interleaved at the configured frequency."""
    result = get_slides_with_ads(supabase, chapter_id)

    # Impressions are written after the response goes out
    if reader_id:
        for placement in result.placements:
            background_tasks.add_task(
                log_ad_impression, supabase, reader_id, placement.ad_id, placement.position
            )

    return result.as_response()
