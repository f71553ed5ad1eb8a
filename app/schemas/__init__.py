# LLM contracts and request/response schemas
from .contract import FunctionContract, StrictModel
from .analysis import ANALYSIS_CONTRACT, AnalysisResult, CategoryBlock, IdeaSubmission
from .report import REPORT_CONTRACT, ReportRequest, SubscribeRequest, ValidationRoadmap

__all__ = [
    "FunctionContract",
    "StrictModel",
    "ANALYSIS_CONTRACT",
    "AnalysisResult",
    "CategoryBlock",
    "IdeaSubmission",
    "REPORT_CONTRACT",
    "ReportRequest",
    "SubscribeRequest",
    "ValidationRoadmap",
]
