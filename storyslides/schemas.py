from datetime import date
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from storyslides.core.config import settings


class CamelModel(BaseModel):
    """Request bodies use camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)


class SplitChapterInput(CamelModel):
    chapter_id: str = Field(..., alias="chapterId", min_length=1)
    text: str
    word_limit: int = Field(default=settings.DEFAULT_WORD_LIMIT, alias="wordLimit", ge=1)


class TrackProgressInput(CamelModel):
    reader_id: str = Field(..., alias="readerId", min_length=1)
    novel_id: str = Field(..., alias="novelId", min_length=1)
    chapter_id: str = Field(..., alias="chapterId", min_length=1)
    slide_number: int = Field(..., alias="slideNumber", ge=0)
    completed: bool = False


class AdData(CamelModel):
    video_url: str = Field(..., alias="videoUrl", min_length=1)
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")

    @model_validator(mode="after")
    def check_window(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class ManageAdInput(CamelModel):
    admin_id: str = Field(..., alias="adminId", min_length=1)
    action: str = Field(..., min_length=1)
    ad_id: Optional[str] = Field(default=None, alias="adId")
    ad_data: Optional[AdData] = Field(default=None, alias="adData")


class AdWatchedInput(CamelModel):
    reader_id: str = Field(..., alias="readerId", min_length=1)
    slide_position: int = Field(..., alias="slidePosition", ge=1)


class UpdateSettingInput(CamelModel):
    admin_id: str = Field(..., alias="adminId", min_length=1)
    value: str


class ModerationInput(CamelModel):
    admin_id: str = Field(..., alias="adminId", min_length=1)
    action: Literal["approve", "reject", "delete", "suspend"]
    target_type: Literal["story", "chapter", "comment", "user"] = Field(..., alias="targetType")
    target_id: str = Field(..., alias="targetId", min_length=1)
    reason: Optional[str] = None
    notes: Optional[str] = None
