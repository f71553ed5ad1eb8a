from datetime import datetime
from typing import Optional, Dict, List
from uuid import UUID, uuid4
from sqlmodel import Field, SQLModel, Column, JSON

from .base import utcnow


class Analysis(SQLModel, table=True):
    __tablename__ = "analyses"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    idea_name: Optional[str] = Field(default=None, max_length=100)
    problem_statement: str = Field(nullable=False)
    target_audience: str = Field(nullable=False)
    unique_value_proposition: str = Field(nullable=False)
    product_description: str = Field(nullable=False)
    total_score: int = Field(ge=0, le=100)
    validation_status: str = Field(max_length=32, nullable=False)
    market_opportunity: Dict = Field(sa_column=Column(JSON, nullable=False))
    competitive_advantage: Dict = Field(sa_column=Column(JSON, nullable=False))
    feasibility: Dict = Field(sa_column=Column(JSON, nullable=False))
    revenue_potential: Dict = Field(sa_column=Column(JSON, nullable=False))
    market_timing: Dict = Field(sa_column=Column(JSON, nullable=False))
    scalability: Dict = Field(sa_column=Column(JSON, nullable=False))
    critical_issues: List[Dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    report_generated: bool = Field(default=False)
    report_data: Optional[Dict] = Field(default=None, sa_column=Column(JSON))
    llm_model: Optional[str] = Field(default=None, max_length=100)
    tokens_used: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
