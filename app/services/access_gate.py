"""
Time-limited access tokens for detailed reports
"""
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import Expired, InvalidToken, NotFound, NotReady, PersistenceError
from app.logging_config import logger
from app.models import Analysis, ReportAccessToken, utcnow
from app.services.analysis_service import parse_analysis_id


class AccessTokenGate:
    """Issues and checks opaque report tokens; validity is re-checked on every read"""

    def __init__(self, ttl_days: Optional[int] = None, clock: Callable[[], datetime] = utcnow):
        """
        Args:
            ttl_days: Token lifetime (uses settings if not provided)
            clock: Returns the current naive UTC time
        """
        self.ttl = timedelta(days=ttl_days if ttl_days is not None else get_settings().TOKEN_TTL_DAYS)
        self.clock = clock

    async def issue(self, analysis_id: Any, email: str, db: AsyncSession) -> ReportAccessToken:
        """
        Create a token for a generated report

        Raises:
            NotFound: Unknown analysis
            NotReady: The report has not been generated yet (no token is created)
            PersistenceError: Store failure
        """
        key = parse_analysis_id(analysis_id)
        try:
            analysis = await db.get(Analysis, key, populate_existing=True)
        except SQLAlchemyError as e:
            logger.error(f"Error loading analysis {key}: {str(e)}")
            raise PersistenceError("Failed to load analysis")

        if analysis is None:
            raise NotFound("Analysis not found")
        if not analysis.report_generated:
            logger.info("Report access requested before generation", extra={"analysis_id": key})
            raise NotReady()

        now = self.clock()
        access = ReportAccessToken(
            token=secrets.token_urlsafe(32),
            email=email,
            analysis_id=key,
            created_at=now,
            expires_at=now + self.ttl,
        )
        try:
            db.add(access)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating report access: {str(e)}", extra={"analysis_id": key})
            raise PersistenceError("Failed to create report access")

        logger.info(f"Report access issued, expires {access.expires_at.isoformat()}", extra={"analysis_id": key})
        return access

    async def resolve(self, token: str, db: AsyncSession) -> Dict[str, Any]:
        """
        Return the report behind a token

        Raises:
            InvalidToken: Unknown token
            Expired: now >= expires_at
            NotFound: Analysis or report missing
        """
        analysis = await self.resolve_analysis(token, db)
        return analysis.report_data

    async def resolve_analysis(self, token: str, db: AsyncSession) -> Analysis:
        """Same checks as resolve(), returning the whole analysis"""
        try:
            access = await db.get(ReportAccessToken, token)
            if access is None:
                raise InvalidToken()

            if not access.is_active(self.clock()):
                raise Expired()

            analysis = await db.get(Analysis, access.analysis_id, populate_existing=True)
        except SQLAlchemyError as e:
            logger.error(f"Error resolving report token: {str(e)}")
            raise PersistenceError("Failed to load report")

        if analysis is None or analysis.report_data is None:
            raise NotFound("Report not found")
        return analysis
