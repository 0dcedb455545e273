from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ApplicationStatus = Literal["pending", "approved", "rejected"]


class DeveloperApplicationCreate(BaseModel):
    developer_name: str = Field(..., max_length=255)
    developer_website: str | None = Field(default=None, max_length=500)
    developer_bio: str
    portfolio_links: list[str] = []
    experience_years: int | None = Field(default=None, ge=0, le=80)
    motivation: str


class ApplicationTransitionRequest(BaseModel):
    status: ApplicationStatus
    notes: str | None = None


class DeveloperApplicationResponse(BaseModel):
    id: str
    user_id: str
    developer_name: str
    developer_website: str | None = None
    developer_bio: str
    portfolio_links: list[str]
    experience_years: int | None = None
    motivation: str
    status: str
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    notes: str | None = None
    created_at: datetime


class DeveloperApplicationListResponse(BaseModel):
    total: int
    results: list[DeveloperApplicationResponse]
