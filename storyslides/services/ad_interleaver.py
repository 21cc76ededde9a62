"""
Ad interleaving: merge a chapter's slides with periodic video-ad entries.

After every Nth slide (N = the ``ads_frequency`` system setting) one active
ad is inserted, cycling through the active ads in a stable order. Impressions
are logged separately by ``log_ad_impression``, which callers schedule as a
background task so the response never waits on it.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from storyslides.core.config import settings
from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import PersistenceError
from storyslides.models import Ad, AdPlacement

logger = setup_logger(__name__)

ADS_FREQUENCY_KEY = "ads_frequency"
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class InterleavedChapter:
    entries: List[Dict[str, Any]]
    total_slides: int
    placements: List[AdPlacement] = field(default_factory=list)

    @property
    def ads_inserted(self) -> int:
        return len(self.placements)

    def as_response(self) -> Dict[str, Any]:
        return {
            "slides": self.entries,
            "totalSlides": self.total_slides,
            "adsInserted": self.ads_inserted,
        }


def parse_ads_frequency(value: Optional[str], default: Optional[int] = None) -> int:
    """
    Parse the stored setting the way an integer-prefix parser would:
    ``"4"`` and ``"4 slides"`` give 4; absent or unparsable gives ``default``.
    """
    if default is None:
        default = settings.DEFAULT_ADS_FREQUENCY
    if value is None:
        return default
    match = LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def load_chapter_slides(supabase: Any, chapter_id: str) -> List[Dict[str, Any]]:
    try:
        response = (
            supabase.table("slides")
            .select("*")
            .eq("chapter_id", chapter_id)
            .order("order_number")
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching slides for chapter {chapter_id}: {e}")
        raise PersistenceError("Failed to fetch slides", stage="fetch_slides") from e
    return response.data or []


def load_ads_frequency(supabase: Any) -> int:
    """Read fresh on every call; no caching."""
    try:
        response = (
            supabase.table("system_settings")
            .select("value")
            .eq("setting_key", ADS_FREQUENCY_KEY)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Could not read {ADS_FREQUENCY_KEY}, using default: {e}")
        return parse_ads_frequency(None)

    rows = response.data or []
    return parse_ads_frequency(rows[0].get("value") if rows else None)


def load_active_ads(supabase: Any, day: Optional[date] = None) -> List[Ad]:
    """Ads whose window contains ``day``. A failed fetch degrades to no ads."""
    day = day or today_utc()
    iso_day = day.isoformat()
    try:
        response = (
            supabase.table("ads")
            .select("*")
            .lte("start_date", iso_day)
            .gte("end_date", iso_day)
            .order("created_at")
            .order("id")
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching ads: {e}")
        return []

    ads = [Ad.from_ads_table(row) for row in response.data or []]
    return [ad for ad in ads if ad.is_active_on(day)]


def interleave_ads(slides: List[Dict[str, Any]], ads: List[Ad], frequency: int) -> InterleavedChapter:
    """
    Tag each slide ``type: slide`` and insert one ad after every
    ``frequency``-th slide. A non-positive frequency disables ads.
    """
    entries: List[Dict[str, Any]] = []
    placements: List[AdPlacement] = []
    ads_enabled = frequency > 0 and len(ads) > 0

    for index, slide in enumerate(slides):
        entries.append({"type": "slide", **slide})

        if ads_enabled and (index + 1) % frequency == 0:
            ad = ads[len(placements) % len(ads)]
            placement = AdPlacement(ad_id=ad.id, video_url=ad.video_url, position=index + 1)
            placements.append(placement)
            entries.append(placement.as_entry())

    return InterleavedChapter(entries=entries, total_slides=len(slides), placements=placements)


def get_slides_with_ads(supabase: Any, chapter_id: str, day: Optional[date] = None) -> InterleavedChapter:
    """
    Load slides, frequency and active ads and merge them.

    Raises:
        PersistenceError: If the slides cannot be fetched.
    """
    logger.info(f"Getting slides with ads for chapter {chapter_id}")

    slides = load_chapter_slides(supabase, chapter_id)
    frequency = load_ads_frequency(supabase)
    if frequency <= 0:
        logger.warning(f"{ADS_FREQUENCY_KEY} is {frequency}; ads disabled")
        ads = []
    else:
        ads = load_active_ads(supabase, day)

    result = interleave_ads(slides, ads, frequency)
    logger.info(
        f"Fetched {result.total_slides} slides with {result.ads_inserted} ads inserted for chapter {chapter_id}"
    )
    return result


def log_ad_impression(supabase: Any, reader_id: str, ad_id: str, slide_position: int) -> None:
    """
    Record one impression row and bump the ad's counter.

    Runs as a background task; errors are logged and dropped. The counter is
    only bumped once the log row is written.
    """
    try:
        (
            supabase.table("ad_logs")
            .insert({
                "reader_id": reader_id,
                "ad_id": ad_id,
                "slide_position": slide_position,
                "watched": False,
            })
            .execute()
        )
        supabase.rpc("increment_ad_impressions", {"ad_id": ad_id}).execute()
    except Exception as e:
        logger.error(f"Error logging ad impression for ad {ad_id}, reader {reader_id}: {e}")
