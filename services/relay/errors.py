"""Relay error taxonomy; every error maps to a JSON {ok: false, error} response"""

from typing import Optional


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MissingFieldError(RelayError):
    status_code = 400

    def __init__(self, field: str):
        super().__init__("Missing subject or description")
        self.field = field


class InvalidPayloadError(RelayError):
    status_code = 400

    def __init__(self, message: str = "Invalid JSON body"):
        super().__init__(message)


class PayloadTooLargeError(RelayError):
    status_code = 413

    def __init__(self, limit: int):
        super().__init__("Request body too large")
        self.limit = limit


class ServiceNotConfiguredError(RelayError):
    """reason is "missing_api_key" or "missing_recipient" """

    MESSAGES = {
        "missing_api_key": "Email service not configured",
        "missing_recipient": "Support email not configured",
    }

    def __init__(self, reason: str):
        super().__init__(self.MESSAGES[reason])
        self.reason = reason


class DeliveryFailedError(RelayError):
    def __init__(self, provider: str, detail: Optional[str] = None):
        super().__init__(f"Failed to send email via {provider}")
        self.provider = provider
        self.detail = detail
