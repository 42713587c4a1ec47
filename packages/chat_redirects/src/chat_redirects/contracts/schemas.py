"""
Redirect API Models

Pydantic models for requests and responses.
JSON field names are camelCase (sourceUserId, startDate, ...); Python code
uses snake_case.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chat_redirects.persistence.models import ScheduledRedirect


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RedirectChatsRequest(CamelModel):
    """Body of an immediate redirect."""

    source_user_id: str = Field(..., min_length=1, description="User whose chats are moved")
    destination_user_id: str = Field(..., min_length=1, description="User receiving the chats")


class MessageResponse(CamelModel):
    message: str


class CreateScheduledRedirectRequest(CamelModel):
    """Body of a scheduled redirect creation."""

    source_user_id: str = Field(..., min_length=1)
    destination_user_id: str = Field(..., min_length=1)
    sector_code: str = Field(..., min_length=1)
    start_date: datetime = Field(..., description="When the redirect becomes active")
    end_date: datetime | None = Field(None, description="When it ends; null = open-ended")


class UpdateEndDateRequest(CamelModel):
    end_date: datetime


class ScheduledRedirectResponse(CamelModel):
    """A persisted scheduled redirect."""

    id: str
    source_user_id: str
    destination_user_id: str
    sector_code: str
    start_date: datetime
    end_date: datetime | None = None
    status: Literal["scheduled", "active", "completed", "cancelled"]
    created_at: datetime

    @classmethod
    def from_record(cls, record: ScheduledRedirect) -> "ScheduledRedirectResponse":
        return cls.model_validate(record)


class RedirectSummary(CamelModel):
    """
    One row of the redirect listing.

    status "active" is an ad-hoc override read from account config (its id is
    "sectorCode:destinationUserId"); status "scheduled" is a persisted record,
    whose lifecycle status is in record_status.
    """

    id: str
    status: Literal["active", "scheduled"]
    record_status: str | None = None
    sector_code: str
    sector_name: str
    source_user_id: str = ""
    source_user_name: str = ""
    destination_user_id: str
    destination_user_name: str
    start_date: datetime | None = None
    end_date: datetime | None = None


class SectorResponse(CamelModel):
    code: str
    name: str


class DirectoryUserResponse(CamelModel):
    id: str
    name: str
    email: str
    active: bool


class DirectoryPageMeta(CamelModel):
    has_next_page: bool
    next: str | None = None
    has_prev_page: bool
    previous: str | None = None
    per_page: int


class DirectoryUsersResponse(CamelModel):
    data: list[DirectoryUserResponse]
    meta: DirectoryPageMeta


class CycleResultResponse(CamelModel):
    skipped: bool
    activated: int
    completed: int
    failed: int
    errors: dict[str, str]
