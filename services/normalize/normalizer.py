"""
Ticket Normalizer
Converts raw desktop-app ticket payloads to the canonical Ticket format
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional, Union

import structlog

from shared.schemas.ticket import Attachment, NetworkStatus, Ticket, VpnStatus

logger = structlog.get_logger()

# Ordered alias table: canonical field -> raw keys, first non-empty wins.
# Older desktop clients used camelCase, some builds shipped snake_case.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "subject": ("subject",),
    "description": ("description",),
    "hostname": ("hostname", "computerName", "computer_name"),
    "username": ("username", "userName", "user"),
    "os": ("osVersion", "os_version"),
    "ipv4": ("ipv4", "ipAddress", "ip_address"),
    "requester_email": ("userEmail", "user_email", "email", "requesterEmail"),
    "urgency": ("urgency", "priority"),
    "app_version": ("appVersion", "app_version"),
    "created_at": ("timestamp", "createdAt", "created_at"),
    "category": ("category",),
    "category_detail": ("printerInfo", "printer_info", "categoryDetail", "category_detail"),
    "screenshot_filename": ("screenshotFilename", "screenshot_filename"),
    "screenshots": (
        "screenshotBase64",
        "screenshot_base64",
        "screenshotDataUrl",
        "screenshot_data_url",
        "screenshot",
        "screenshots",
    ),
    "system_metrics": ("systemMetrics", "system_metrics"),
    "app_context": ("appContext", "app_context"),
    "network_status": ("networkStatus", "network_status"),
}

REQUIRED_FIELDS = ("subject", "description")

DEFAULT_OS = "Unknown OS"
DEFAULT_URGENCY = "Normal"
DEFAULT_APP_VERSION = "unknown"
DEFAULT_SCREENSHOT_TYPE = "image/png"

FALSE_STRINGS = frozenset({"", "false", "0", "no", "off"})


class TicketValidationError(ValueError):
    """Raised when a payload cannot become a Ticket"""

    def __init__(self, field: str, kind: str = "MissingField"):
        self.field = field
        self.kind = kind
        super().__init__(f"{kind}: {field}")


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TicketNormalizer:
    """
    Normalizes raw ticket submissions to the Ticket schema.

    Features:
    - Resolves legacy field names through FIELD_ALIASES
    - Extracts screenshots from base64, data-URL or list payloads
    - Parses app context given as a mapping or a JSON string
    - Keeps diagnostic blocks (metrics, network) as pass-through data
    """

    def __init__(self, aliases: Optional[dict[str, tuple[str, ...]]] = None):
        self.aliases = aliases or FIELD_ALIASES

    def normalize(self, raw: dict, received_at: Optional[datetime] = None) -> Ticket:
        """
        Normalize a raw ticket payload to Ticket.

        Args:
            raw: Decoded JSON body sent by the desktop app
            received_at: Request receipt time, used when the payload has no timestamp

        Returns:
            Normalized Ticket

        Raises:
            TicketValidationError: subject or description missing or empty
        """
        if not isinstance(raw, dict):
            raise TicketValidationError("payload", kind="InvalidPayload")

        for field in REQUIRED_FIELDS:
            if not self._text(raw, field):
                raise TicketValidationError(field)

        category = self._text(raw, "category")
        # Detail only means something next to a category
        category_detail = self._text(raw, "category_detail") if category else None

        return Ticket(
            subject=self._text(raw, "subject"),
            description=str(self._lookup(raw, "description")),  # verbatim, already checked non-blank
            hostname=self._text(raw, "hostname"),
            username=self._text(raw, "username"),
            os=self._text(raw, "os") or DEFAULT_OS,
            ipv4=self._text(raw, "ipv4"),
            requester_email=self._text(raw, "requester_email"),
            urgency=self._text(raw, "urgency") or DEFAULT_URGENCY,
            app_version=self._text(raw, "app_version") or DEFAULT_APP_VERSION,
            created_at=self._text(raw, "created_at") or utc_timestamp(received_at),
            category=category,
            category_detail=category_detail,
            screenshots=self._extract_screenshots(raw),
            system_metrics=self._mapping(raw, "system_metrics"),
            app_context=self._parse_app_context(raw),
            network_status=self._parse_network_status(raw),
        )

    def describe(self, raw: dict) -> dict[str, Any]:
        """Summarize the payload shape for logging (never the screenshot bytes)"""
        if not isinstance(raw, dict):
            return {"type": type(raw).__name__}
        screenshot_key = self._first_key(raw, "screenshots")
        return {
            "keys": sorted(str(k) for k in raw.keys()),
            "subject": self._text(raw, "subject"),
            "urgency": self._text(raw, "urgency"),
            "hostname": self._text(raw, "hostname"),
            "category": self._text(raw, "category"),
            "screenshot_field": screenshot_key,
            "has_system_metrics": self._mapping(raw, "system_metrics") is not None,
            "has_network_status": self._mapping(raw, "network_status") is not None,
            "has_app_context": self._first_key(raw, "app_context") is not None,
        }

    def _lookup(self, raw: dict, field: str) -> Any:
        """Return the first non-empty value among the aliases of field"""
        key = self._first_key(raw, field)
        return raw[key] if key is not None else None

    def _first_key(self, raw: dict, field: str) -> Optional[str]:
        for key in self.aliases.get(field, (field,)):
            if not self._is_empty(raw.get(key)):
                return key
        return None

    @staticmethod
    def _is_empty(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        if isinstance(value, (list, tuple, dict)):
            return len(value) == 0
        return False

    def _text(self, raw: dict, field: str) -> Optional[str]:
        """Scalar field as a stripped string, None when absent or blank"""
        value = self._lookup(raw, field)
        if value is None or isinstance(value, (dict, list, tuple)):
            return None
        text = str(value).strip()
        return text or None

    def _mapping(self, raw: dict, field: str) -> Optional[dict[str, Any]]:
        value = self._lookup(raw, field)
        return dict(value) if isinstance(value, dict) else None

    def _extract_screenshots(self, raw: dict) -> tuple[Attachment, ...]:
        """
        Build screenshot attachments from the first alias that yields any.

        A single value becomes screenshot.png; list entries become
        screenshot-<n>.png. A filename override replaces every name.
        """
        override = self._text(raw, "screenshot_filename")

        for key in self.aliases["screenshots"]:
            value = raw.get(key)
            if isinstance(value, (list, tuple)):
                payloads = [p for p in (self._decode_screenshot(v) for v in value) if p]
                names = [f"screenshot-{i}.png" for i in range(1, len(payloads) + 1)]
            else:
                payload = self._decode_screenshot(value)
                payloads = [payload] if payload else []
                names = ["screenshot.png"]

            if payloads:
                return tuple(
                    Attachment(
                        filename=override or name,
                        content=content,
                        content_type=content_type,
                        content_id=f"screenshot-{i}",
                    )
                    for i, ((content, content_type), name) in enumerate(zip(payloads, names), start=1)
                )
        return ()

    @staticmethod
    def _decode_screenshot(value: Any) -> Optional[tuple[str, str]]:
        """Return (base64 payload, content type) or None for blank input"""
        if not isinstance(value, str) or not value.strip():
            return None
        value = value.strip()
        content_type = DEFAULT_SCREENSHOT_TYPE
        if value.startswith("data:") and "," in value:
            header, value = value.split(",", 1)
            mime = header[len("data:"):].split(";", 1)[0].strip()
            if mime:
                content_type = mime
            value = value.strip()
        return (value, content_type) if value else None

    def _parse_app_context(self, raw: dict) -> Optional[Union[dict[str, Any], str]]:
        """Mapping as-is, JSON object strings parsed, other strings kept as text"""
        value = self._lookup(raw, "app_context")
        if isinstance(value, dict):
            return dict(value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return value.strip()
            if isinstance(parsed, dict):
                return parsed or None
            return value.strip()
        return None

    def _parse_network_status(self, raw: dict) -> Optional[NetworkStatus]:
        value = self._mapping(raw, "network_status")
        if value is None:
            return None

        vpn = value.get("vpn")
        vpn_status = None
        if isinstance(vpn, dict):
            vpn_status = VpnStatus(
                active=self._flag(vpn.get("active")),
                name=self._optional_str(vpn.get("name")),
                ip=self._optional_str(vpn.get("ip")),
            )

        return NetworkStatus(
            online=self._flag(value.get("online")),
            checked_at=self._optional_str(value.get("checkedAt", value.get("checked_at"))),
            vpn=vpn_status,
        )

    @staticmethod
    def _flag(value: Any) -> bool:
        """Client booleans, including string forms such as "false" or "0" """
        if isinstance(value, str):
            return value.strip().lower() not in FALSE_STRINGS
        return bool(value)

    @staticmethod
    def _optional_str(value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


# Default normalizer instance
default_normalizer = TicketNormalizer()


def normalize_ticket(raw: dict, received_at: Optional[datetime] = None) -> Ticket:
    """Convenience function to normalize a ticket"""
    return default_normalizer.normalize(raw, received_at=received_at)
