"""
Support Relay Service
Receives desktop-app support tickets and forwards them as email via Resend
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from services.normalize.normalizer import TicketNormalizer, TicketValidationError
from services.render.renderer import TicketRenderer

from .config import Settings
from .errors import (
    DeliveryFailedError,
    InvalidPayloadError,
    MissingFieldError,
    PayloadTooLargeError,
    RelayError,
    ServiceNotConfiguredError,
)
from .mailer import EmailMessage, Mailer, ResendMailer

logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    email_configured: bool
    recipient_configured: bool


def configure_logging(level: str = "INFO") -> None:
    """Drop structlog events below the configured level"""
    level_value = getattr(logging, level.upper(), None)
    if not isinstance(level_value, int):
        level_value = logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level_value))


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


async def _read_payload(request: Request, max_body_bytes: int) -> dict:
    """Decode the JSON body, enforcing the size cap on the bytes actually read"""
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_body_bytes:
            raise PayloadTooLargeError(max_body_bytes)
        chunks.append(chunk)
    body = b"".join(chunks)
    try:
        payload = json.loads(body) if body else {}
    except (ValueError, RecursionError) as e:
        raise InvalidPayloadError() from e
    if not isinstance(payload, dict):
        raise InvalidPayloadError()
    return payload


def _check_configuration(settings: Settings) -> None:
    if not settings.email_configured:
        raise ServiceNotConfiguredError("missing_api_key")
    if not settings.recipient_configured:
        raise ServiceNotConfiguredError("missing_recipient")


def create_app(settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Process configuration; read from the environment when omitted
        mailer: Delivery collaborator; a ResendMailer built from settings when omitted
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting Support Relay",
            port=settings.port,
            provider=app.state.mailer.provider_name,
            max_body_bytes=settings.max_body_bytes,
        )
        for warning in settings.warnings():
            logger.warning(warning)
        yield
        logger.info("Shutting down Support Relay")

    app = FastAPI(
        title="Support Relay",
        description="Desktop support tickets relayed as email",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.normalizer = TicketNormalizer()
    app.state.renderer = TicketRenderer(brand_name=settings.brand_name)
    app.state.mailer = mailer or ResendMailer(
        api_key=settings.resend_api_key,
        api_url=settings.resend_api_url,
        timeout=settings.email_timeout,
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        """Reject requests whose declared Content-Length exceeds the cap"""
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_body_bytes:
            logger.warning("Ticket rejected", reason="body_too_large", content_length=int(length))
            return _error_response(413, PayloadTooLargeError(settings.max_body_bytes).message)
        return await call_next(request)

    # CORS for the desktop app webview
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Report whether delivery is configured"""
        return HealthResponse(
            status="healthy" if (settings.email_configured and settings.recipient_configured) else "degraded",
            email_configured=settings.email_configured,
            recipient_configured=settings.recipient_configured,
        )

    @app.post("/api/ticket")
    async def submit_ticket(request: Request):
        """Normalize, render and email a support ticket"""
        received_at = datetime.now(timezone.utc)
        normalizer: TicketNormalizer = app.state.normalizer
        renderer: TicketRenderer = app.state.renderer
        mailer: Mailer = app.state.mailer

        try:
            raw = await _read_payload(request, settings.max_body_bytes)
            logger.info("Ticket received", **normalizer.describe(raw))

            try:
                ticket = normalizer.normalize(raw, received_at=received_at)
            except TicketValidationError as e:
                raise MissingFieldError(e.field) from e

            _check_configuration(settings)

            rendered = renderer.render(ticket)
            message = EmailMessage(
                sender=settings.support_email_from,
                to=list(settings.support_email_to),
                subject=rendered.subject,
                text=rendered.text,
                html=rendered.html,
                reply_to=ticket.requester_email,
                attachments=list(ticket.screenshots),
            )

            result = await mailer.send(message)
            if not result.ok:
                logger.error("Email delivery failed", provider=mailer.provider_name, error=result.error)
                raise DeliveryFailedError(mailer.provider_name, result.error)

            logger.info(
                "Ticket email sent",
                provider=mailer.provider_name,
                subject=rendered.subject,
                message_id=result.message_id,
                screenshots=ticket.screenshot_count,
            )
            content = {"ok": True}
            if result.message_id:
                content["id"] = result.message_id
            return content

        except RelayError as e:
            logger.warning("Ticket rejected", status=e.status_code, error=e.message)
            return _error_response(e.status_code, e.message)
        except Exception as e:
            logger.exception("Error sending ticket email", error=str(e))
            return _error_response(500, "Failed to send email")

    return app


load_dotenv()
app = create_app()


def run():
    """Console entrypoint: serve the relay with uvicorn"""
    import uvicorn

    settings = app.state.settings
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
