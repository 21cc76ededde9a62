"""
Chapter segmentation: raw chapter text into ordered, word-bounded slides.

The text is split into sentences on runs of ``.``, ``!`` and ``?`` and the
sentences are packed greedily into slides. Each sentence is re-terminated with
a period. A slide only exceeds the word limit when a single sentence does.
Abbreviations, decimals and quoted dialogue are not special-cased.
"""

import re
from dataclasses import dataclass
from typing import Any, List

from storyslides.core.concurrency import DB_SEMAPHORE, concurrency_monitor
from storyslides.core.logger_config import setup_logger
from storyslides.exceptions import PersistenceError
from storyslides.models import Slide

logger = setup_logger(__name__)

SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


@dataclass
class SegmentationResult:
    chapter_id: str
    slides: List[Slide]
    word_count: int
    metadata_updated: bool


def split_sentences(text: str) -> List[str]:
    """Split on sentence punctuation, dropping blank fragments."""
    return [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]


def count_words(text: str) -> int:
    return len(text.split())


def pack_slides(chapter_id: str, text: str, word_limit: int = 400) -> List[Slide]:
    """
    Greedily pack the sentences of ``text`` into slides of at most
    ``word_limit`` words, numbered from 1.
    """
    slides: List[Slide] = []
    current = ""

    for sentence in split_sentences(text):
        candidate = f"{current} {sentence}." if current else f"{sentence}."
        if count_words(candidate) <= word_limit:
            current = candidate
            continue

        if current:
            slides.append(Slide(chapter_id=chapter_id, order_number=len(slides) + 1, content=current))
        current = f"{sentence}."

    if current:
        slides.append(Slide(chapter_id=chapter_id, order_number=len(slides) + 1, content=current))

    return slides


async def replace_chapter_slides(pool: Any, chapter_id: str, slides: List[Slide]) -> None:
    """
    Delete every stored slide of the chapter and insert ``slides`` in one
    transaction. A transaction-scoped advisory lock on the chapter id makes
    concurrent re-segmentations of the same chapter run one after the other.
    """
    records = [(s.chapter_id, s.order_number, s.content) for s in slides]

    async with DB_SEMAPHORE:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    "SELECT pg_advisory_xact_lock(hashtext($1))", chapter_id
                )
                await conn.execute(
                    "DELETE FROM slides WHERE chapter_id = $1", chapter_id
                )
                if records:
                    await conn.executemany(
                        """
                        INSERT INTO slides (chapter_id, order_number, content)
                        VALUES ($1, $2, $3)
                        """,
                        records,
                    )


def update_chapter_counts(supabase: Any, chapter_id: str, slide_count: int, word_count: int) -> bool:
    """Denormalized counters on the chapter row. Failures are logged, not raised."""
    try:
        (
            supabase.table("chapters")
            .update({"slide_count": slide_count, "word_count": word_count})
            .eq("id", chapter_id)
            .execute()
        )
        return True
    except Exception as e:
        logger.error(f"Error updating chapter {chapter_id} counts: {e}")
        return False


async def segment_chapter(
    pool: Any,
    supabase: Any,
    chapter_id: str,
    text: str,
    word_limit: int = 400,
) -> SegmentationResult:
    """
    Split ``text`` into slides, replace the chapter's stored slides and update
    the chapter's ``slide_count`` / ``word_count``.

    Raises:
        PersistenceError: If the delete/insert transaction fails.
    """
    logger.info(f"Splitting chapter {chapter_id} into slides with word limit {word_limit}")

    async with concurrency_monitor.track("split_chapter"):
        slides = pack_slides(chapter_id, text, word_limit)

        try:
            await replace_chapter_slides(pool, chapter_id, slides)
        except Exception as e:
            logger.error(f"Error replacing slides for chapter {chapter_id}: {e}")
            raise PersistenceError("Failed to create slides", stage="replace_slides") from e

        word_count = count_words(text)
        metadata_updated = update_chapter_counts(supabase, chapter_id, len(slides), word_count)

    logger.info(f"Successfully created {len(slides)} slides for chapter {chapter_id}")
    return SegmentationResult(
        chapter_id=chapter_id,
        slides=slides,
        word_count=word_count,
        metadata_updated=metadata_updated,
    )
