"""
Unit tests for report access tokens
"""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import func, select, update

from app.errors import Expired, InvalidToken, NotFound, NotReady
from app.models import Analysis, ReportAccessToken
from app.services.access_gate import AccessTokenGate
from tests.factories import make_report_payload


class FrozenClock:
    """Settable clock for boundary tests"""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


async def _count_tokens(session):
    result = await session.execute(select(func.count()).select_from(ReportAccessToken))
    return result.scalar_one()


@pytest_asyncio.fixture
async def reported_analysis(database, stored_analysis):
    async with database.get_session() as session:
        await session.execute(
            update(Analysis)
            .where(Analysis.id == stored_analysis.id)
            .values(report_generated=True, report_data=make_report_payload())
        )
    return stored_analysis


class TestAccessTokenGate:
    """Test token issue and resolution"""

    @pytest.fixture
    def clock(self):
        return FrozenClock(datetime(2025, 3, 1, 12, 0, 0))

    @pytest.fixture
    def gate(self, clock):
        return AccessTokenGate(ttl_days=7, clock=clock)

    @pytest.mark.asyncio
    async def test_issue_token(self, gate, session, reported_analysis):
        """Test a token is issued for a generated report"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        assert len(access.token) >= 32
        assert access.email == "founder@example.com"
        assert access.expires_at == datetime(2025, 3, 8, 12, 0, 0)
        assert await _count_tokens(session) == 1

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, gate, session, reported_analysis):
        """Test every issue creates a new token"""
        first = await gate.issue(reported_analysis.id, "founder@example.com", session)
        second = await gate.issue(reported_analysis.id, "founder@example.com", session)

        assert first.token != second.token
        assert await _count_tokens(session) == 2

    @pytest.mark.asyncio
    async def test_issue_before_report_is_not_ready(self, gate, session, stored_analysis):
        """Test NotReady and no token when the report is missing"""
        with pytest.raises(NotReady) as exc_info:
            await gate.issue(stored_analysis.id, "founder@example.com", session)

        assert exc_info.value.status_code == 400
        assert await _count_tokens(session) == 0

    @pytest.mark.asyncio
    async def test_issue_for_unknown_analysis(self, gate, session):
        """Test NotFound for an id with no row"""
        with pytest.raises(NotFound):
            await gate.issue(uuid4(), "founder@example.com", session)

    @pytest.mark.asyncio
    async def test_resolve_returns_report(self, gate, session, reported_analysis):
        """Test a fresh token resolves to the report"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        report = await gate.resolve(access.token, session)

        assert report == make_report_payload()

    @pytest.mark.asyncio
    async def test_resolve_unknown_token(self, gate, session):
        """Test InvalidToken for tokens never issued"""
        with pytest.raises(InvalidToken) as exc_info:
            await gate.resolve("not-a-real-token", session)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_token_valid_just_before_expiry(self, gate, clock, session, reported_analysis):
        """Test a token one second before expires_at still works"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        clock.now = access.expires_at - timedelta(seconds=1)

        assert await gate.resolve(access.token, session) is not None

    @pytest.mark.asyncio
    async def test_token_expired_at_expiry(self, gate, clock, session, reported_analysis):
        """Test a token is expired exactly at expires_at"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        clock.now = access.expires_at

        with pytest.raises(Expired) as exc_info:
            await gate.resolve(access.token, session)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_expired_after_expiry(self, gate, clock, session, reported_analysis):
        """Test a token one second past expires_at is expired"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        clock.now = access.expires_at + timedelta(seconds=1)

        with pytest.raises(Expired):
            await gate.resolve(access.token, session)

    @pytest.mark.asyncio
    async def test_expired_is_terminal(self, gate, clock, session, reported_analysis):
        """Test an expired token stays expired"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        clock.now = access.expires_at + timedelta(days=30)
        with pytest.raises(Expired):
            await gate.resolve(access.token, session)

        with pytest.raises(Expired):
            await gate.resolve(access.token, session)

    @pytest.mark.asyncio
    async def test_resolve_analysis(self, gate, session, reported_analysis):
        """Test resolving to the whole analysis"""
        access = await gate.issue(reported_analysis.id, "founder@example.com", session)

        analysis = await gate.resolve_analysis(access.token, session)

        assert analysis.id == reported_analysis.id
        assert analysis.total_score == 68
