"""
Idea submission and scored-analysis contract
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.contract import FunctionContract, StrictModel


READY_TO_VALIDATE = "READY TO VALIDATE"
NEEDS_REFINEMENT = "NEEDS REFINEMENT"
MAJOR_CONCERNS = "MAJOR CONCERNS"

ValidationStatus = Literal["READY TO VALIDATE", "NEEDS REFINEMENT", "MAJOR CONCERNS"]

CATEGORY_NAMES = (
    "market_opportunity",
    "competitive_advantage",
    "feasibility",
    "revenue_potential",
    "market_timing",
    "scalability",
)


class IdeaSubmission(BaseModel):
    """The four-field idea description submitted by a user"""

    model_config = ConfigDict(str_strip_whitespace=True)

    problem_statement: str = Field(..., min_length=20, max_length=500)
    target_audience: str = Field(..., min_length=20, max_length=300)
    unique_value_proposition: str = Field(..., min_length=20, max_length=500)
    product_description: str = Field(..., min_length=30, max_length=1000)
    idea_name: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("idea_name", mode="before")
    @classmethod
    def blank_name_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class InsightItem(StrictModel):
    title: str
    description: str
    action_steps: List[str] = Field(default_factory=list)


class CategoryBlock(StrictModel):
    score: float = Field(..., ge=0, le=100)
    insights: List[InsightItem]
    improvement_tips: List[str] = Field(
        ...,
        min_length=3,
        max_length=3,
        description="Three brief, actionable tips for improvement",
    )


class CriticalIssue(StrictModel):
    issue: str
    recommendation: str


class AnalysisResult(StrictModel):
    """Structured output of the scoring call"""

    market_opportunity: CategoryBlock = Field(
        ..., description="Market size and growth potential (25% of total score)"
    )
    competitive_advantage: CategoryBlock = Field(
        ..., description="Unique value proposition and barriers to entry (20% of total score)"
    )
    feasibility: CategoryBlock = Field(
        ..., description="Technical and operational complexity (15% of total score)"
    )
    revenue_potential: CategoryBlock = Field(
        ..., description="Revenue model and financial projections (15% of total score)"
    )
    market_timing: CategoryBlock = Field(
        ..., description="Current market conditions and technological readiness (15% of total score)"
    )
    scalability: CategoryBlock = Field(
        ..., description="Growth potential and operational complexity (10% of total score)"
    )
    total_score: float = Field(..., description="Calculated total score out of 100")
    validation_status: ValidationStatus = Field(
        ..., description="Overall validation status based on total score"
    )
    critical_issues: List[CriticalIssue] = Field(
        ..., description="Critical issues that could be immediate disqualifiers"
    )

    def category_scores(self) -> Dict[str, float]:
        return {name: getattr(self, name).score for name in CATEGORY_NAMES}


ANALYSIS_CONTRACT = FunctionContract(
    name="startup_analysis",
    description="Analyze a startup idea and provide structured insights",
    model=AnalysisResult,
)


class AnalysisCreated(BaseModel):
    id: UUID


class AnalysisRead(BaseModel):
    """Scored breakdown returned to clients"""

    id: UUID
    idea_name: Optional[str] = None
    problem_statement: str
    target_audience: str
    unique_value_proposition: str
    product_description: str
    total_score: int
    validation_status: ValidationStatus
    market_opportunity: Dict[str, Any]
    competitive_advantage: Dict[str, Any]
    feasibility: Dict[str, Any]
    revenue_potential: Dict[str, Any]
    market_timing: Dict[str, Any]
    scalability: Dict[str, Any]
    critical_issues: List[Dict[str, Any]]
    report_generated: bool
    created_at: datetime
