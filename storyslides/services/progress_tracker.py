from datetime import datetime, timezone
from typing import Any, Dict, List

from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import PersistenceError
from storyslides.models import ReadingProgress

logger = setup_logger(__name__)

PROGRESS_CONFLICT_KEY = "reader_id,novel_id,chapter_id"


def _bump_counter(supabase: Any, procedure: str, params: Dict[str, Any]) -> bool:
    try:
        supabase.rpc(procedure, params).execute()
        return True
    except Exception as e:
        logger.error(f"Counter update {procedure}({params}) failed: {e}")
        return False


def track_progress(
    supabase: Any,
    reader_id: str,
    novel_id: str,
    chapter_id: str,
    slide_number: int,
    completed: bool = False,
) -> List[Dict[str, Any]]:
    """
    Upsert the reader's position for (reader, novel, chapter), overwriting any
    earlier record for that key.

    A completed call bumps the chapter and story view counters once each.
    Repeated completed calls bump them again; counting is at-least-once.
    Counter failures are logged and do not fail the call.

    Raises:
        PersistenceError: If the upsert fails.
    """
    logger.info(
        f"Tracking progress for reader {reader_id}, novel {novel_id}, "
        f"chapter {chapter_id}, slide {slide_number}"
    )

    progress = ReadingProgress(
        reader_id=reader_id,
        novel_id=novel_id,
        chapter_id=chapter_id,
        slide_number=slide_number,
        completed=completed,
        last_read_at=datetime.now(timezone.utc).isoformat(),
    )

    try:
        response = (
            supabase.table("reads")
            .upsert(progress.as_row(), on_conflict=PROGRESS_CONFLICT_KEY)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error tracking progress for reader {reader_id}: {e}")
        raise PersistenceError("Failed to track progress", stage="upsert_progress") from e

    if completed:
        _bump_counter(supabase, "increment_chapter_views", {"chapter_id": chapter_id})
        _bump_counter(supabase, "increment_story_views", {"story_id": novel_id})

    logger.info(f"Successfully tracked progress for reader {reader_id}")
    return response.data or []
