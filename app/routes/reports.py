"""
API routes for detailed reports: background generation, access tokens and export
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.logging_config import logger
from app.schemas.report import ReportRequest
from app.services.access_gate import AccessTokenGate
from app.services.export_service import ExportService
from app.services.report_worker import ReportWorker

router = APIRouter(prefix="/report", tags=["reports"])


def get_report_worker(request: Request) -> ReportWorker:
    return request.app.state.report_worker


def get_access_gate(request: Request) -> AccessTokenGate:
    return request.app.state.access_gate


def get_export_service(request: Request) -> ExportService:
    return request.app.state.export_service


@router.post("/trigger")
async def trigger_report(
    payload: ReportRequest,
    worker: ReportWorker = Depends(get_report_worker),
    db: AsyncSession = Depends(get_db)
):
    """Queue report generation and delivery; returns without waiting for it"""
    await worker.enqueue(payload.analysis_id, payload.email, db)
    return {"success": True}


@router.post("/access")
async def create_report_access(
    payload: ReportRequest,
    gate: AccessTokenGate = Depends(get_access_gate),
    db: AsyncSession = Depends(get_db)
):
    """Issue a time-limited token for a generated report"""
    access = await gate.issue(payload.analysis_id, payload.email, db)
    return {"token": access.token}


@router.get("/access")
async def read_report(
    token: str = Query(..., min_length=1),
    gate: AccessTokenGate = Depends(get_access_gate),
    db: AsyncSession = Depends(get_db)
):
    """Get the report behind an access token"""
    report_data = await gate.resolve(token, db)
    return {"reportData": report_data}


@router.get("/pdf")
async def export_report_pdf(
    token: str = Query(..., min_length=1),
    gate: AccessTokenGate = Depends(get_access_gate),
    exporter: ExportService = Depends(get_export_service),
    db: AsyncSession = Depends(get_db)
):
    """Download the report behind an access token as PDF"""
    analysis = await gate.resolve_analysis(token, db)
    pdf_content = exporter.report_to_pdf(analysis)
    logger.info("Report PDF downloaded", extra={"analysis_id": analysis.id})
    return Response(
        content=pdf_content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="validation-roadmap-{analysis.id}.pdf"'}
    )
