from datetime import datetime
from uuid import UUID
from sqlmodel import Field, SQLModel

from .base import utcnow


class ReportAccessToken(SQLModel, table=True):
    __tablename__ = "report_access_tokens"

    token: str = Field(primary_key=True, max_length=64)
    email: str = Field(max_length=320, nullable=False)
    analysis_id: UUID = Field(foreign_key="analyses.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(nullable=False)

    def is_active(self, now: datetime) -> bool:
        # Strict comparison: a token is already expired at expires_at
        return now < self.expires_at
