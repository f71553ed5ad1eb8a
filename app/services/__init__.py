# Business logic services package
from .llm_client import LLMClient
from .analysis_service import AnalysisService
from .report_service import ReportService
from .access_gate import AccessTokenGate
from .email_service import EmailService
from .export_service import ExportService
from .report_worker import ReportWorker

__all__ = [
    "LLMClient",
    "AnalysisService",
    "ReportService",
    "AccessTokenGate",
    "EmailService",
    "ExportService",
    "ReportWorker"
]
