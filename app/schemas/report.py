"""
Validation-roadmap report contract and report request payloads
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.analysis import ValidationStatus
from app.schemas.contract import FunctionContract, StrictModel


class ValidationStrategy(StrictModel):
    summary: str
    key_objectives: List[str]
    timeline: str


class TargetSegment(StrictModel):
    segment: str
    characteristics: str
    finding_channels: str


class CustomerValidation(StrictModel):
    target_segments: List[TargetSegment]
    interview_questions: List[str]
    success_metrics: List[str]


class MvpFeature(StrictModel):
    feature: str
    purpose: str
    testing_approach: str


class SolutionTestMethod(StrictModel):
    method: str
    description: str
    expected_outcome: str


class SolutionValidation(StrictModel):
    mvp_features: List[MvpFeature]
    testing_methods: List[SolutionTestMethod]


class MarketResearchArea(StrictModel):
    area: str
    sources: str
    metrics: str


class CompetitorAssessment(StrictModel):
    competitor: str
    strengths: str
    weaknesses: str


class MarketValidation(StrictModel):
    market_research: List[MarketResearchArea]
    competitor_analysis: List[CompetitorAssessment]


class Risk(StrictModel):
    risk: str
    impact: str
    mitigation_strategy: str


class ReportCriticalIssue(StrictModel):
    issue: str
    impact: str
    recommendation: str


class NextStep(StrictModel):
    step: str
    details: str
    priority: Literal["HIGH", "MEDIUM", "LOW"]


class ValidationRoadmap(StrictModel):
    """Structured output of the report call"""

    validation_strategy: ValidationStrategy = Field(
        ..., description="Overall validation strategy and approach"
    )
    customer_validation: CustomerValidation = Field(
        ..., description="Steps to validate customer needs and willingness to pay"
    )
    solution_validation: SolutionValidation = Field(
        ..., description="Steps to validate the proposed solution"
    )
    market_validation: MarketValidation = Field(
        ..., description="Steps to validate market size and competition"
    )
    risks: List[Risk] = Field(..., description="Key risks and mitigation strategies")
    validation_status: ValidationStatus
    critical_issues: List[ReportCriticalIssue] = Field(
        ..., description="Critical issues that must be addressed"
    )
    next_steps_report: List[NextStep] = Field(
        ..., description="Prioritized next steps for validation"
    )


REPORT_CONTRACT = FunctionContract(
    name="validation_roadmap",
    description="Generate a practical validation roadmap for a startup idea",
    model=ValidationRoadmap,
)


class ReportRequest(BaseModel):
    """Body of /report/trigger and /report/access"""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    analysis_id: str = Field(..., alias="analysisId", min_length=1, max_length=64)
    email: EmailStr


class SubscribeRequest(BaseModel):
    """Body of /email/subscribe"""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    email: EmailStr
    list_id: int = Field(..., alias="listId", gt=0)
