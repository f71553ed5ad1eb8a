"""
API routes for idea analysis
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.logging_config import logger
from app.schemas.analysis import AnalysisCreated, AnalysisRead
from app.services.analysis_service import AnalysisService, analysis_to_dict

router = APIRouter(tags=["analysis"])


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


@router.post("/analyze", status_code=201, response_model=AnalysisCreated)
async def analyze_idea(
    idea: Dict[str, Any] = Body(...),
    service: AnalysisService = Depends(get_analysis_service),
    db: AsyncSession = Depends(get_db)
):
    """Score a startup idea and store the analysis"""
    analysis_id = await service.analyze(idea, db)
    logger.info("Analysis request completed", extra={"analysis_id": analysis_id})
    return {"id": analysis_id}


@router.get("/analysis/{analysis_id}", response_model=AnalysisRead)
async def get_analysis(
    analysis_id: str,
    service: AnalysisService = Depends(get_analysis_service),
    db: AsyncSession = Depends(get_db)
):
    """Get the scored breakdown of a stored analysis"""
    analysis = await service.get_analysis(analysis_id, db)
    return analysis_to_dict(analysis)
