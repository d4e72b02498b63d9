"""
Support Relay - Ticket Schemas

Defines the canonical Ticket record built from a desktop-app submission
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Urgency(str, Enum):
    """Urgency band shown on the ticket email"""
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"


class Attachment(BaseModel):
    """Screenshot carried alongside the email (base64 payload, no data-URL prefix)"""
    model_config = ConfigDict(frozen=True)

    filename: str
    content: str
    content_type: str = "image/png"
    content_id: Optional[str] = None  # inline reference used by the HTML body


class VpnStatus(BaseModel):
    """VPN state reported by the client"""
    model_config = ConfigDict(frozen=True)

    active: bool = False
    name: Optional[str] = None
    ip: Optional[str] = None


class NetworkStatus(BaseModel):
    """Connectivity snapshot taken by the client when the ticket was filed"""
    model_config = ConfigDict(frozen=True)

    online: bool = False
    checked_at: Optional[str] = None
    vpn: Optional[VpnStatus] = None


class Ticket(BaseModel):
    """
    Canonical normalized support ticket.

    Optional fields stay absent here; human-readable placeholders are
    supplied by the renderer only.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "subject": "Printer jam",
                "description": "Tray 2 stuck",
                "hostname": "WS-12",
                "os": "Windows 11 Pro",
                "urgency": "High",
                "app_version": "1.4.0",
                "created_at": "2025-01-15T10:30:00.000Z",
                "category": "Printers",
                "category_detail": "HP LaserJet M404",
            }
        },
    )

    # Content
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)

    # Requester machine
    hostname: Optional[str] = None
    username: Optional[str] = None
    os: str = "Unknown OS"
    ipv4: Optional[str] = None
    requester_email: Optional[str] = None

    # Classification
    urgency: str = Urgency.NORMAL.value
    category: Optional[str] = None
    category_detail: Optional[str] = Field(None, description="Free-form detail, e.g. printer model")

    # Meta
    app_version: str = "unknown"
    created_at: str

    # Attachments and diagnostics
    screenshots: tuple[Attachment, ...] = ()
    system_metrics: Optional[dict[str, Any]] = None
    app_context: Optional[Union[dict[str, Any], str]] = None
    network_status: Optional[NetworkStatus] = None

    @property
    def screenshot(self) -> Optional[Attachment]:
        """First screenshot, if any"""
        return self.screenshots[0] if self.screenshots else None

    @property
    def screenshot_count(self) -> int:
        return len(self.screenshots)
