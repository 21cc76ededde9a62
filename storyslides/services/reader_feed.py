from typing import Any, Dict, List, Optional

from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import PersistenceError

logger = setup_logger(__name__)

FEED_SELECT = (
    "*, profiles!stories_author_id_fkey(display_name, username), "
    "story_tags(tag), chapters(id)"
)

SORT_COLUMNS = {
    "popular": "like_count",
    "newest": "created_at",
    "trending": "view_count",
}


def _reading_progress(supabase: Any, reader_id: str) -> Dict[str, Dict[str, Any]]:
    """Latest progress row per novel; later rows win."""
    try:
        response = (
            supabase.table("reads")
            .select("novel_id, chapter_id, slide_number, completed")
            .eq("reader_id", reader_id)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Could not load progress for reader {reader_id}: {e}")
        return {}

    progress = {}
    for read in response.data or []:
        progress[read["novel_id"]] = {
            "chapterId": read.get("chapter_id"),
            "slideNumber": read.get("slide_number"),
            "completed": read.get("completed", False),
        }
    return progress


def _liked_story_ids(supabase: Any, reader_id: str) -> Optional[set]:
    try:
        response = supabase.table("likes").select("story_id").eq("user_id", reader_id).execute()
    except Exception as e:
        logger.warning(f"Could not load likes for reader {reader_id}: {e}")
        return None
    return {like["story_id"] for like in response.data or []}


def author_name(story: Dict[str, Any]) -> str:
    profile = story.get("profiles") or {}
    return profile.get("display_name") or profile.get("username") or "Unknown Author"


def get_reader_feed(
    supabase: Any,
    reader_id: Optional[str] = None,
    genre: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    sort_by: str = "popular",
) -> Dict[str, Any]:
    """
    Published stories for the discovery feed, with the reader's progress and
    likes merged in when ``reader_id`` is given.

    Raises:
        PersistenceError: If the stories cannot be fetched.
    """
    logger.info(f"Getting reader feed - genre: {genre}, limit: {limit}, sortBy: {sort_by}")

    query = supabase.table("stories").select(FEED_SELECT).eq("status", "published")
    if genre and genre != "all":
        query = query.eq("genre", genre)
    query = query.order(SORT_COLUMNS.get(sort_by, "created_at"), desc=True)
    query = query.range(offset, offset + limit - 1)

    try:
        stories = query.execute().data or []
    except Exception as e:
        logger.error(f"Error fetching reader feed: {e}")
        raise PersistenceError("Failed to fetch stories", stage="fetch_feed") from e

    progress: Dict[str, Dict[str, Any]] = {}
    liked = None
    if reader_id:
        progress = _reading_progress(supabase, reader_id)
        liked = _liked_story_ids(supabase, reader_id)

    enhanced: List[Dict[str, Any]] = []
    for story in stories:
        item = {
            **story,
            "chapterCount": len(story.get("chapters") or []),
            "tags": [t["tag"] for t in story.get("story_tags") or []],
            "author": author_name(story),
            "readingProgress": progress.get(story["id"]),
        }
        if liked is not None:
            item["isLiked"] = story["id"] in liked
        enhanced.append(item)

    logger.info(f"Fetched {len(enhanced)} stories for reader feed")
    return {"stories": enhanced, "hasMore": len(enhanced) == limit}
