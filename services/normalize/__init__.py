"""
Support Relay Normalize Service
Converts raw desktop-app payloads to the canonical Ticket format

Components:
- normalizer.py: TicketNormalizer for raw -> Ticket conversion
- cli.py: Preview a saved payload as rendered email
"""

from .normalizer import FIELD_ALIASES, TicketNormalizer, TicketValidationError, normalize_ticket

__all__ = ["FIELD_ALIASES", "TicketNormalizer", "TicketValidationError", "normalize_ticket"]
