"""
Report service: generate the validation roadmap for a stored analysis
"""
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFound, PersistenceError
from app.logging_config import logger
from app.models import Analysis, utcnow
from app.schemas.report import REPORT_CONTRACT
from app.services.analysis_service import AnalysisService
from app.services.llm_client import LLMClient
from app.services.prompt_builder import build_report_prompt


class ReportService:
    """Second-pass LLM call that turns an analysis into a validation roadmap"""

    def __init__(self, llm_client: LLMClient, analysis_service: Optional[AnalysisService] = None):
        self.llm_client = llm_client
        self.analysis_service = analysis_service or AnalysisService(llm_client)

    async def generate_report(self, analysis_id: Any, contact_email: str, db: AsyncSession) -> None:
        """
        Generate and store the detailed report for an analysis

        The report is written onto the analysis row and read later through
        the access-token gate; nothing is returned.

        Args:
            analysis_id: Identifier of an existing analysis
            contact_email: Address the report is being prepared for
            db: Database session

        Raises:
            NotFound: Unknown analysis (no LLM call is made)
            Refused, SchemaViolation, ProviderError: From the LLM call
            PersistenceError: The report could not be stored
        """
        analysis = await self.analysis_service.get_analysis(analysis_id, db)
        logger.info("Generating report", extra={"analysis_id": analysis.id})

        result = await self.llm_client.generate_structured(
            build_report_prompt(analysis), REPORT_CONTRACT
        )

        await self._store_report(analysis.id, result.data.model_dump(), db)
        logger.info("Report stored", extra={"analysis_id": analysis.id})

    async def _store_report(self, analysis_id, report_data: dict, db: AsyncSession) -> None:
        """Single place that sets report_generated; whole-document overwrite"""
        try:
            result = await db.execute(
                update(Analysis)
                .where(Analysis.id == analysis_id)
                .values(report_data=report_data, report_generated=True, updated_at=utcnow())
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Failed to store report: {str(e)}",
                extra={"analysis_id": analysis_id, "report_payload": report_data},
            )
            raise PersistenceError("Failed to save report")

        if result.rowcount == 0:
            # Deleted between load and write
            raise NotFound("Analysis not found")
