from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
from sqlmodel import Field, SQLModel

from .base import utcnow


class ReportJobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class ReportJob(SQLModel, table=True):
    __tablename__ = "report_jobs"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    # Stored as submitted; the worker resolves it when the job runs
    analysis_id: str = Field(max_length=64, nullable=False, index=True)
    email: str = Field(max_length=320, nullable=False)
    status: str = Field(default=ReportJobStatus.PENDING.value, max_length=16, index=True)
    attempts: int = Field(default=0)
    last_error: Optional[str] = None
    report_completed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
