"""
Unit tests for durable report delivery
"""
import asyncio
from unittest.mock import AsyncMock, Mock, patch
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.errors import ProviderError
from app.models import Analysis, ReportAccessToken, ReportJob, ReportJobStatus
from app.schemas.report import REPORT_CONTRACT
from app.services.access_gate import AccessTokenGate
from app.services.analysis_service import AnalysisService
from app.services.email_service import EmailNetworkError
from app.services.report_service import ReportService
from app.services.report_worker import ReportWorker
from tests.factories import make_report_payload, make_structured_result


class TestReportWorker:
    """Test job execution, retries and recovery"""

    @pytest.fixture
    def llm_client(self):
        client = Mock()
        client.generate_structured = AsyncMock(
            return_value=make_structured_result(REPORT_CONTRACT, make_report_payload())
        )
        return client

    @pytest.fixture
    def email_service(self):
        service = Mock()
        service.send_report_ready = AsyncMock(return_value={"messageId": "<1@brevo>"})
        return service

    @pytest.fixture
    def worker(self, llm_client, email_service, database):
        analysis_service = AnalysisService(llm_client, session_factory=database.get_session)
        return ReportWorker(
            ReportService(llm_client, analysis_service),
            AccessTokenGate(ttl_days=7),
            email_service,
            session_factory=database.get_session,
            base_url="https://app.example/",
            max_attempts=3,
            backoff_seconds=0,
            concurrency=2,
        )

    async def _load_job(self, database, job_id):
        async with database.get_session() as session:
            return await session.get(ReportJob, job_id)

    @pytest.mark.asyncio
    async def test_enqueue_persists_pending_job(self, worker, session, stored_analysis):
        """Test trigger-time work is a stored job plus a queue entry"""
        job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)

        assert job.status == ReportJobStatus.PENDING.value
        assert job.attempts == 0
        assert job.analysis_id == str(stored_analysis.id)
        assert worker.queue.get_nowait() == job.id

    @pytest.mark.asyncio
    async def test_process_job_generates_and_delivers(self, worker, email_service, database, session, stored_analysis):
        """Test a successful run stores the report and emails the link"""
        job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)

        status = await worker.process_job(job.id)

        assert status == ReportJobStatus.SUCCEEDED
        stored_job = await self._load_job(database, job.id)
        assert stored_job.status == ReportJobStatus.SUCCEEDED.value
        assert stored_job.attempts == 1
        assert stored_job.report_completed_at is not None
        assert stored_job.delivered_at is not None

        async with database.get_session() as fresh:
            analysis = await fresh.get(Analysis, stored_analysis.id)
            tokens = (await fresh.execute(select(ReportAccessToken))).scalars().all()
        assert analysis.report_generated is True
        assert len(tokens) == 1

        to, report_url, score, status_text = email_service.send_report_ready.call_args.args
        assert to == "founder@example.com"
        assert report_url == f"https://app.example/report/access?token={tokens[0].token}"
        assert score == 68
        assert status_text == "NEEDS REFINEMENT"

    @pytest.mark.asyncio
    async def test_transient_failure_retries_without_regenerating(
        self, worker, llm_client, email_service, database, session, stored_analysis
    ):
        """Test an email failure is retried and the report is not generated twice"""
        email_service.send_report_ready.side_effect = [
            EmailNetworkError(Exception("connection reset")),
            {"messageId": "<2@brevo>"},
        ]
        job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)
        worker.queue.get_nowait()

        first = await worker.process_job(job.id)

        assert first == ReportJobStatus.PENDING
        stored_job = await self._load_job(database, job.id)
        assert stored_job.attempts == 1
        assert "EmailNetworkError" in stored_job.last_error
        assert stored_job.report_completed_at is not None
        assert stored_job.delivered_at is None
        assert worker.queue.get_nowait() == job.id

        second = await worker.process_job(job.id)

        assert second == ReportJobStatus.SUCCEEDED
        assert llm_client.generate_structured.await_count == 1
        stored_job = await self._load_job(database, job.id)
        assert stored_job.attempts == 2
        assert stored_job.last_error is None

    @pytest.mark.asyncio
    async def test_unknown_analysis_fails_permanently(self, worker, llm_client, session):
        """Test NotFound is not retried and raises an alert"""
        job = await worker.enqueue(uuid4(), "founder@example.com", session)
        worker.queue.get_nowait()

        with patch('app.services.report_worker.logger') as mock_logger:
            status = await worker.process_job(job.id)

        assert status == ReportJobStatus.FAILED
        assert worker.queue.empty()
        llm_client.generate_structured.assert_not_called()
        assert mock_logger.error.call_args.kwargs["extra"]["alert"] is True

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, worker, llm_client, database, session, stored_analysis):
        """Test provider failures are retried up to the attempt limit"""
        llm_client.generate_structured.side_effect = ProviderError("LLM request timed out")
        job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)

        statuses = []
        while not worker.queue.empty():
            statuses.append(await worker.process_job(worker.queue.get_nowait()))

        assert statuses == [ReportJobStatus.PENDING, ReportJobStatus.PENDING, ReportJobStatus.FAILED]
        stored_job = await self._load_job(database, job.id)
        assert stored_job.attempts == 3
        assert "ProviderError" in stored_job.last_error

    @pytest.mark.asyncio
    async def test_finished_jobs_are_not_rerun(self, worker, llm_client, session, stored_analysis):
        """Test a succeeded job is skipped"""
        job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)
        await worker.process_job(job.id)

        assert await worker.process_job(job.id) is None
        assert llm_client.generate_structured.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_waits_for_backoff(self, worker, llm_client, database, session, stored_analysis):
        """Test a positive backoff delays the re-queue"""
        worker.backoff_seconds = 30
        llm_client.generate_structured.side_effect = ProviderError("rate limited")
        job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)
        worker.queue.get_nowait()

        status = await worker.process_job(job.id)

        assert status == ReportJobStatus.PENDING
        assert worker.queue.empty()
        assert len(worker._retry_handles) == 1

        await worker.stop()
        assert worker._retry_handles == []

    @pytest.mark.asyncio
    async def test_recover_pending(self, worker, database, stored_analysis):
        """Test unfinished jobs from a previous process are re-queued"""
        jobs = [
            ReportJob(analysis_id=str(stored_analysis.id), email="a@example.com", status=status.value)
            for status in ReportJobStatus
        ]
        async with database.get_session() as session:
            session.add_all(jobs)

        recovered = await worker.recover_pending()

        assert recovered == 2
        queued = {worker.queue.get_nowait(), worker.queue.get_nowait()}
        expected = {job.id for job in jobs if job.status in ("PENDING", "RUNNING")}
        assert queued == expected

    @pytest.mark.asyncio
    async def test_concurrent_jobs_last_write_wins(self, worker, llm_client, database, session, stored_analysis):
        """Test two jobs for one analysis both finish with one whole report stored"""
        first_report = make_report_payload(summary="First roadmap.")
        second_report = make_report_payload(summary="Second roadmap.")
        llm_client.generate_structured.side_effect = [
            make_structured_result(REPORT_CONTRACT, first_report),
            make_structured_result(REPORT_CONTRACT, second_report),
        ]
        first = await worker.enqueue(stored_analysis.id, "a@example.com", session)
        second = await worker.enqueue(stored_analysis.id, "b@example.com", session)

        statuses = await asyncio.gather(worker.process_job(first.id), worker.process_job(second.id))

        assert statuses == [ReportJobStatus.SUCCEEDED, ReportJobStatus.SUCCEEDED]
        async with database.get_session() as fresh:
            analysis = await fresh.get(Analysis, stored_analysis.id)
        assert analysis.report_data in (first_report, second_report)

    @pytest.mark.asyncio
    async def test_start_drains_queue(self, worker, database, session, stored_analysis):
        """Test the worker tasks process queued jobs in the background"""
        await worker.start()
        try:
            job = await worker.enqueue(stored_analysis.id, "founder@example.com", session)
            await asyncio.wait_for(worker.queue.join(), timeout=10)
        finally:
            await worker.stop()

        stored_job = await self._load_job(database, job.id)
        assert stored_job.status == ReportJobStatus.SUCCEEDED.value
        assert worker.is_running is False
