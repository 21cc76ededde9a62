"""
Engagement analytics for a writer's stories.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import PersistenceError

logger = setup_logger(__name__)

TIME_RANGES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}


def range_start(time_range: str, now: Optional[datetime] = None) -> Optional[str]:
    """ISO start of the window, or None for ``all`` / unknown ranges."""
    window = TIME_RANGES.get(time_range)
    if window is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - window).isoformat()


def _fetch_events(
    supabase: Any,
    table: str,
    columns: str,
    story_column: str,
    story_ids: List[str],
    since: Optional[str],
) -> List[Dict[str, Any]]:
    """Secondary tables degrade to empty on failure."""
    if not story_ids:
        return []
    query = supabase.table(table).select(columns).in_(story_column, story_ids)
    if since:
        query = query.gte("created_at", since)
    try:
        return query.execute().data or []
    except Exception as e:
        logger.warning(f"Could not load {table} for analytics: {e}")
        return []


def summarize(
    stories: List[Dict[str, Any]],
    reads: List[Dict[str, Any]],
    comments: List[Dict[str, Any]],
    likes: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Per-story and overall engagement figures."""
    reads_by_story = Counter(r["novel_id"] for r in reads)
    completed_by_story = Counter(r["novel_id"] for r in reads if r.get("completed"))
    comments_by_story = Counter(c["story_id"] for c in comments)
    likes_by_story = Counter(l["story_id"] for l in likes)

    story_analytics = []
    for story in stories:
        sid = story["id"]
        total_reads = reads_by_story[sid]
        completed_reads = completed_by_story[sid]
        story_analytics.append({
            **story,
            "analytics": {
                "totalReads": total_reads,
                "completedReads": completed_reads,
                "completionRate": (completed_reads / total_reads) * 100 if total_reads else 0,
                "newComments": comments_by_story[sid],
                "newLikes": likes_by_story[sid],
                "engagement": total_reads + comments_by_story[sid] + likes_by_story[sid],
            },
        })

    published = sum(1 for s in stories if s.get("status") == "published")
    total_engagement = len(reads) + len(comments) + len(likes)
    overall = {
        "totalStories": len(stories),
        "publishedStories": published,
        "totalReads": len(reads),
        "totalComments": len(comments),
        "totalLikes": len(likes),
        "totalEngagement": total_engagement,
        "averageEngagementPerStory": total_engagement / published if published else 0,
    }
    return {"overallAnalytics": overall, "storyAnalytics": story_analytics}


def get_writer_analytics(
    supabase: Any,
    writer_id: str,
    story_id: Optional[str] = None,
    time_range: str = "30d",
) -> Dict[str, Any]:
    """
    Raises:
        PersistenceError: If the writer's stories cannot be fetched.
    """
    logger.info(f"Getting analytics for writer {writer_id}, story: {story_id}, timeRange: {time_range}")

    query = (
        supabase.table("stories")
        .select("id, title, view_count, like_count, comment_count, created_at, status")
        .eq("author_id", writer_id)
    )
    if story_id:
        query = query.eq("id", story_id)

    try:
        stories = query.execute().data or []
    except Exception as e:
        logger.error(f"Error fetching stories for writer {writer_id}: {e}")
        raise PersistenceError("Failed to fetch stories", stage="fetch_stories") from e

    story_ids = [s["id"] for s in stories]
    since = range_start(time_range)

    reads = _fetch_events(supabase, "reads", "novel_id, completed, created_at", "novel_id", story_ids, since)
    comments = _fetch_events(supabase, "comments", "story_id, created_at", "story_id", story_ids, since)
    likes = _fetch_events(supabase, "likes", "story_id, created_at", "story_id", story_ids, since)

    result = summarize(stories, reads, comments, likes)
    result["timeRange"] = time_range
    return result
