# Database models package
from .analysis import Analysis
from .report_access import ReportAccessToken
from .report_job import ReportJob, ReportJobStatus
from .base import utcnow

__all__ = ["Analysis", "ReportAccessToken", "ReportJob", "ReportJobStatus", "utcnow"]
