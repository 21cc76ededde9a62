"""
Reading-pipeline data models.
"""

from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class Slide(BaseModel):
    """One reading page of a chapter."""

    chapter_id: str
    order_number: int = Field(..., ge=1)
    content: str

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    def as_row(self) -> Dict[str, Any]:
        return {
            "chapter_id": self.chapter_id,
            "order_number": self.order_number,
            "content": self.content,
        }


class Ad(BaseModel):
    """A video ad with its inclusive validity window."""

    id: str
    video_url: str
    start_date: date
    end_date: date
    impressions: int = 0
    clicks: int = 0

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_ads_table(cls, data: Dict[str, Any]) -> "Ad":
        """Create Ad from an ``ads`` row; timestamps are cut to their date part."""
        return cls(
            id=str(data["id"]),
            video_url=data["video_url"],
            start_date=str(data["start_date"])[:10],
            end_date=str(data["end_date"])[:10],
            impressions=data.get("impressions") or 0,
            clicks=data.get("clicks") or 0,
        )

    def is_active_on(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class AdPlacement(BaseModel):
    """An ad inserted into a slide stream, after slide ``position``."""

    ad_id: str
    video_url: str
    position: int

    def as_entry(self) -> Dict[str, Any]:
        return {
            "type": "ad",
            "id": self.ad_id,
            "video_url": self.video_url,
            "position": self.position,
        }


class ReadingProgress(BaseModel):
    """A reader's furthest position in one chapter of a novel."""

    reader_id: str
    novel_id: str
    chapter_id: str
    slide_number: int
    completed: bool = False
    last_read_at: Optional[str] = None

    def as_row(self) -> Dict[str, Any]:
        return {
            "reader_id": self.reader_id,
            "novel_id": self.novel_id,
            "chapter_id": self.chapter_id,
            "slide_number": self.slide_number,
            "completed": self.completed,
            "last_read_at": self.last_read_at,
        }
