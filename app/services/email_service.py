"""
Transactional email delivery through the Brevo API
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
from email_validator import EmailNotValidError, validate_email
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import get_settings
from app.logging_config import logger


BREVO_API_URL = "https://api.brevo.com/v3"
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"

Recipient = Union[str, Dict[str, str]]


class EmailError(Exception):
    """Base class for email delivery failures"""


class EmailRateLimitError(EmailError):
    def __init__(self):
        super().__init__("Rate limit exceeded")


class EmailNetworkError(EmailError):
    def __init__(self, original: Exception):
        super().__init__(f"Network error occurred: {str(original)}")


class EmailDeliveryError(EmailError):
    pass


def is_valid_email(email: str) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class EmailService:
    """Sends templated transactional emails"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender_email: Optional[str] = None,
        sender_name: Optional[str] = None,
        report_template_id: Optional[int] = None,
        ttl_days: Optional[int] = None,
        api_url: str = BREVO_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize email service

        Args:
            api_key: Brevo API key (uses settings if not provided)
            sender_email: Sender address (uses settings if not provided)
            sender_name: Sender display name (uses settings if not provided)
            report_template_id: Brevo template for report emails; local templates if None
            ttl_days: Link lifetime mentioned in the email (uses settings if not provided)
            api_url: Brevo API base URL
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self.api_key = api_key or settings.EMAIL_PROVIDER_KEY
        self.sender_email = sender_email or settings.EMAIL_SENDER_ADDRESS
        self.sender_name = sender_name or settings.EMAIL_SENDER_NAME
        self.report_template_id = (
            report_template_id if report_template_id is not None else settings.BREVO_REPORT_TEMPLATE_ID
        )
        self.ttl_days = ttl_days if ttl_days is not None else settings.TOKEN_TTL_DAYS
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport
        self.templates = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def _normalize_recipients(self, to: Union[Recipient, List[Recipient]]) -> List[Dict[str, str]]:
        recipients = to if isinstance(to, list) else [to]
        normalized = [{"email": r} if isinstance(r, str) else dict(r) for r in recipients]
        for recipient in normalized:
            address = recipient.get("email") or ""
            try:
                validate_email(address, check_deliverability=False)
            except EmailNotValidError as e:
                raise EmailDeliveryError(f"Invalid email address: {address}") from e
        return normalized

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        """POST to Brevo, mapping transport failures and 429"""
        if not self.api_key:
            raise EmailDeliveryError("Email provider key is not configured")

        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.api_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(path, json=payload, headers=headers)
        except httpx.TransportError as e:
            logger.error(f"Network error calling Brevo {path}: {str(e)}")
            raise EmailNetworkError(e)

        if response.status_code == 429:
            logger.warning("Brevo rate limit hit")
            raise EmailRateLimitError()

        return response

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"message": response.text or "Unknown error"}
        return body if isinstance(body, dict) else {}

    async def send_email(
        self,
        to: Union[Recipient, List[Recipient]],
        subject: Optional[str] = None,
        html: Optional[str] = None,
        text: Optional[str] = None,
        template_id: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
        reply_to: Optional[Recipient] = None,
    ) -> Dict[str, Any]:
        """
        Send one transactional email

        Either a Brevo template (template_id + params) or an explicit
        subject with HTML/text content is required.

        Returns:
            Brevo response body (contains messageId)

        Raises:
            EmailDeliveryError: Invalid input, missing key or rejected request
            EmailRateLimitError: Brevo answered 429
            EmailNetworkError: Transport failure
        """
        if not self.api_key:
            raise EmailDeliveryError("Email provider key is not configured")

        payload: Dict[str, Any] = {
            "to": self._normalize_recipients(to),
            "sender": {"email": self.sender_email, "name": self.sender_name},
        }

        if template_id:
            payload["templateId"] = template_id
            if params:
                payload["params"] = params
        else:
            if not subject:
                raise EmailDeliveryError("Subject is required when not using a template")
            payload["subject"] = subject
            if html:
                payload["htmlContent"] = html
            if text:
                payload["textContent"] = text

        if reply_to:
            payload["replyTo"] = {"email": reply_to} if isinstance(reply_to, str) else reply_to

        response = await self._post("/smtp/email", payload)

        if response.is_error:
            message = self._error_body(response).get("message", "Unknown error")
            logger.error(f"Brevo rejected email ({response.status_code}): {message}")
            raise EmailDeliveryError(f"Failed to send email: {message}")

        logger.info(f"Email sent to {len(payload['to'])} recipient(s)")
        return response.json() if response.content else {}

    async def subscribe_to_list(self, email: str, list_id: int) -> Optional[Dict[str, Any]]:
        """
        Add a contact to a Brevo list

        Existing contacts are updated. A duplicate-contact answer counts
        as success and returns None.

        Raises:
            EmailDeliveryError: Invalid address, missing key or rejected request
            EmailRateLimitError: Brevo answered 429
            EmailNetworkError: Transport failure
        """
        contact = self._normalize_recipients(email)[0]
        payload = {"email": contact["email"], "listIds": [list_id], "updateEnabled": True}

        response = await self._post("/contacts", payload)

        if response.is_error:
            body = self._error_body(response)
            message = body.get("message", "Unknown error")
            if body.get("code") == "duplicate_parameter" or "duplicate" in str(message).lower():
                logger.info(f"Contact already on list {list_id}")
                return None
            logger.error(f"Brevo rejected contact ({response.status_code}): {message}")
            raise EmailDeliveryError(f"Failed to subscribe contact: {message}")

        logger.info(f"Contact subscribed to list {list_id}")
        return response.json() if response.content else None

    def render_report_email(self, report_url: str, score: int, status: Optional[str] = None) -> Tuple[str, str, str]:
        """Subject, HTML and text bodies for the report-ready email"""
        context = {
            "report_url": report_url,
            "score": score,
            "status": status,
            "ttl_days": self.ttl_days,
            "sender_name": self.sender_name,
        }
        html = self.templates.get_template("report_ready.html").render(**context)
        text = self.templates.get_template("report_ready.txt").render(**context)
        return "Your validation roadmap is ready", html, text

    async def send_report_ready(
        self, to: str, report_url: str, score: int, status: Optional[str] = None
    ) -> Dict[str, Any]:
        """Deliver the access link for a generated report"""
        if self.report_template_id:
            return await self.send_email(
                to,
                template_id=self.report_template_id,
                params={"reportUrl": report_url, "score": score},
            )

        subject, html, text = self.render_report_email(report_url, score, status)
        return await self.send_email(to, subject=subject, html=html, text=text)
