# backend/excel_analytics/schemas.py
from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .policy import Role


def new_id() -> str:
    return uuid4().hex


class ColumnSummary(BaseModel):
    count: int = Field(ge=0)
    sum: float
    average: float


class UploadRecord(BaseModel):
    """One stored upload: decoded rows plus their summary. Never changed once built."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    owner: str
    filename: str
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    rows: List[Dict[str, Any]]
    summary: Dict[str, ColumnSummary]

    @classmethod
    def create(cls, owner: str, filename: str, rows, summary) -> "UploadRecord":
        return cls(owner=owner, filename=filename, rows=[dict(r) for r in rows], summary=summary)


class Account(BaseModel):
    id: str = Field(default_factory=new_id)
    username: str
    password_hash: str
    role: Role = Role.USER


class AccountOut(BaseModel):
    id: str
    username: str
    role: Role


class Credentials(BaseModel):
    username: str | None = None
    password: str | None = None


class RoleUpdate(BaseModel):
    role: str | None = None


class LoginResponse(BaseModel):
    token: str
    role: Role


class UploadSummary(BaseModel):
    message: str
    id: str
    rowCount: int
    analysis: Dict[str, ColumnSummary]


class InsightsRequest(BaseModel):
    data: Any = None
