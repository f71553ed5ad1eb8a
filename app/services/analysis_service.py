"""
Analysis service: validate an idea, score it through the LLM and persist the result
"""
from typing import Any, Dict, Mapping
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import db_manager
from app.errors import NotFound, PersistenceError, ValidationError
from app.logging_config import logger
from app.models import Analysis
from app.schemas.analysis import ANALYSIS_CONTRACT, CATEGORY_NAMES, AnalysisResult, IdeaSubmission
from app.services.llm_client import LLMClient
from app.services.prompt_builder import build_analysis_prompt
from app.services.scoring import compute_total_score, validation_status_for


def parse_analysis_id(analysis_id: Any) -> UUID:
    """Coerce a client-supplied id; malformed ids are reported as missing"""
    if isinstance(analysis_id, UUID):
        return analysis_id
    try:
        return UUID(str(analysis_id))
    except (TypeError, ValueError):
        raise NotFound("Analysis not found")


def validate_idea(idea_data: Mapping[str, Any]) -> IdeaSubmission:
    """
    Validate raw idea fields

    Raises:
        ValidationError: With one entry per offending field
    """
    try:
        return IdeaSubmission.model_validate(dict(idea_data))
    except PydanticValidationError as e:
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        raise ValidationError("Invalid idea submission", details=details)


class AnalysisService:
    """Scores ideas and stores the analysis"""

    def __init__(self, llm_client: LLMClient, session_factory=None):
        self.llm_client = llm_client
        # Used for the single persistence retry
        self.session_factory = session_factory or db_manager.get_session

    async def analyze(self, idea_data: Mapping[str, Any], db: AsyncSession) -> UUID:
        """
        Analyze an idea and persist the scored breakdown

        Args:
            idea_data: Raw idea fields as submitted
            db: Database session

        Returns:
            Identifier of the new analysis

        Raises:
            ValidationError: Invalid input (no LLM call is made)
            Refused: The model declined the request
            SchemaViolation: The model answer did not match the contract
            ProviderError: The LLM call failed
            PersistenceError: The analysis could not be stored
        """
        idea = validate_idea(idea_data)
        logger.info("Starting idea analysis")

        result = await self.llm_client.generate_structured(
            build_analysis_prompt(idea), ANALYSIS_CONTRACT
        )
        analysis = self.build_analysis(idea, result.data)
        analysis.llm_model = result.model
        analysis.tokens_used = result.tokens_used

        await self._persist(analysis, db)

        logger.info(
            f"Analysis stored: total_score={analysis.total_score} "
            f"status={analysis.validation_status}",
            extra={"analysis_id": analysis.id},
        )
        return analysis.id

    def build_analysis(self, idea: IdeaSubmission, result: AnalysisResult) -> Analysis:
        """Combine idea and model output; total and status are recomputed here"""
        total_score = compute_total_score(result.category_scores())
        status = validation_status_for(total_score)

        if round(result.total_score) != total_score or result.validation_status != status:
            logger.info(
                f"Model reported {result.total_score}/{result.validation_status}, "
                f"recomputed {total_score}/{status}"
            )

        blocks = {name: getattr(result, name).model_dump() for name in CATEGORY_NAMES}
        return Analysis(
            idea_name=idea.idea_name,
            problem_statement=idea.problem_statement,
            target_audience=idea.target_audience,
            unique_value_proposition=idea.unique_value_proposition,
            product_description=idea.product_description,
            total_score=total_score,
            validation_status=status,
            critical_issues=[issue.model_dump() for issue in result.critical_issues],
            **blocks,
        )

    async def _persist(self, analysis: Analysis, db: AsyncSession) -> None:
        """
        Store the analysis; on failure retry the write once on a fresh session

        The LLM call has already been paid for at this point, so the parsed
        result is kept and only the write is repeated.
        """
        try:
            db.add(analysis)
            await db.commit()
            return
        except SQLAlchemyError as e:
            logger.warning(f"Failed to store analysis, retrying once: {str(e)}")
            await db.rollback()

        try:
            async with self.session_factory() as retry_session:
                retry_session.add(analysis)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to store analysis after retry: {str(e)}",
                extra={"analysis_payload": analysis.model_dump(mode="json")},
            )
            raise PersistenceError("Failed to save analysis")

    async def get_analysis(self, analysis_id: Any, db: AsyncSession) -> Analysis:
        """
        Load a stored analysis

        Raises:
            NotFound: Unknown or malformed id
            PersistenceError: Store failure
        """
        key = parse_analysis_id(analysis_id)
        try:
            analysis = await db.get(Analysis, key)
        except SQLAlchemyError as e:
            logger.error(f"Error loading analysis {key}: {str(e)}")
            raise PersistenceError("Failed to load analysis")

        if analysis is None:
            raise NotFound("Analysis not found")
        return analysis


def analysis_to_dict(analysis: Analysis) -> Dict[str, Any]:
    """Public representation of a stored analysis"""
    return analysis.model_dump(exclude={"report_data", "llm_model", "tokens_used", "updated_at"})
