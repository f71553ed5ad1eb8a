"""
API routes for mailing list subscriptions
"""
from fastapi import APIRouter, Depends, Request

from app.errors import SubscriptionError
from app.schemas.report import SubscribeRequest
from app.services.email_service import EmailError, EmailService

router = APIRouter(prefix="/email", tags=["email"])


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


@router.post("/subscribe")
async def subscribe(
    payload: SubscribeRequest,
    email_service: EmailService = Depends(get_email_service)
):
    """Add an address to a Brevo contact list"""
    try:
        await email_service.subscribe_to_list(payload.email, payload.list_id)
    except EmailError as e:
        raise SubscriptionError(str(e)) from e
    return {"success": True}
