"""
FastAPI application entry point for the LaunchLab idea validation API
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.database import db_manager
from app.errors import IdeaLabError
from app.logging_config import logger, setup_logging
from app.routes import analysis, email, reports
from app.services import (
    AccessTokenGate,
    AnalysisService,
    EmailService,
    ExportService,
    LLMClient,
    ReportService,
    ReportWorker,
)


def build_services(app: FastAPI) -> None:
    """Wire the service graph onto app.state"""
    llm_client = LLMClient()
    analysis_service = AnalysisService(llm_client)
    report_service = ReportService(llm_client, analysis_service)
    access_gate = AccessTokenGate()
    email_service = EmailService()

    app.state.analysis_service = analysis_service
    app.state.access_gate = access_gate
    app.state.email_service = email_service
    app.state.export_service = ExportService()
    app.state.report_worker = ReportWorker(report_service, access_gate, email_service)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    settings = get_settings()
    logger.info(f"LaunchLab API starting up ({settings.ENVIRONMENT})")

    await db_manager.initialize()
    build_services(app)
    await app.state.report_worker.start()

    yield

    # Shutdown
    await app.state.report_worker.stop()
    await db_manager.close()
    logger.info("LaunchLab API shutting down")


# Initialize FastAPI app
app = FastAPI(
    title="LaunchLab API",
    description="Score startup ideas and deliver validation roadmaps",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(IdeaLabError)
async def idealab_error_handler(request: Request, exc: IdeaLabError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request data", "details": details})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(analysis.router)
app.include_router(reports.router)
app.include_router(email.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    database_ok = await db_manager.health_check()
    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "launchlab-api",
        "database": "connected" if database_ok else "unavailable"
    }
