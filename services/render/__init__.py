"""
Support Relay Render Service
Turns a canonical Ticket into email content

Components:
- renderer.py: TicketRenderer producing the mail subject, plain text and HTML bodies
"""

from .renderer import RenderedEmail, TicketRenderer, render_ticket

__all__ = ["RenderedEmail", "TicketRenderer", "render_ticket"]
