"""
Support Relay Service
Accepts ticket submissions over HTTP and delivers them as email

Components:
- main.py: FastAPI application with the /api/ticket endpoint
- config.py: Settings read from the environment
- mailer.py: Resend delivery client (httpx)
- errors.py: RelayError hierarchy mapped to JSON responses
"""

from .config import Settings
from .mailer import DeliveryResult, EmailMessage, ResendMailer

__all__ = ["Settings", "DeliveryResult", "EmailMessage", "ResendMailer"]
