from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from portfolio.schemas.base import ApiModel, PartialUpdate, UtcDatetime
from portfolio.schemas.project import PublicationStatus

END_BEFORE_START = "endDate must not be before startDate"


def ends_before_start(start_date: Optional[datetime], end_date: Optional[datetime]) -> bool:
    return start_date is not None and end_date is not None and end_date < start_date


class ExperienceBase(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    company: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    start_date: UtcDatetime
    end_date: Optional[UtcDatetime] = None
    location: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    current: bool = False
    status: PublicationStatus = PublicationStatus.PUBLISHED


class ExperienceCreate(ExperienceBase):
    @model_validator(mode="after")
    def end_after_start(self):
        if ends_before_start(self.start_date, self.end_date):
            raise ValueError(END_BEFORE_START)
        return self


class ExperienceUpdate(PartialUpdate):
    nullable_fields = frozenset({"end_date", "location"})

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    company: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    location: Optional[str] = None
    technologies: Optional[List[str]] = None
    current: Optional[bool] = None
    status: Optional[PublicationStatus] = None


class ExperienceResponse(ExperienceBase):
    id: str
    created_at: UtcDatetime
    updated_at: UtcDatetime
