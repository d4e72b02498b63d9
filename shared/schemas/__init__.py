"""Support Relay Shared Schemas"""

from .ticket import Attachment, NetworkStatus, Ticket, Urgency, VpnStatus

__all__ = [
    "Attachment",
    "NetworkStatus",
    "Ticket",
    "Urgency",
    "VpnStatus",
]
