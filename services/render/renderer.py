"""
Ticket Renderer
Renders a canonical Ticket into the mail subject, a plain-text body and an HTML body
"""

import html
import json
from typing import Any, Iterable, NamedTuple, Optional

from shared.schemas.ticket import NetworkStatus, Ticket, Urgency

# Placeholders
UNKNOWN = "Unknown"
NOT_PROVIDED = "Not provided"
NOT_AVAILABLE = "N/A"
UNAVAILABLE = "Unavailable"
DEFAULT_CATEGORY = "General"

URGENCY_COLORS = {
    Urgency.HIGH.value.lower(): "#dc2626",
    Urgency.LOW.value.lower(): "#0284c7",
}
NEUTRAL_COLOR = "#6b7280"

TEXT_RULE = "-----------------------------"

# (label, keys, kind); keys are tried in order, camelCase first
METRIC_FIELDS: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("Captured at", ("capturedAt", "captured_at"), "text"),
    ("Uptime (hours)", ("uptimeHours", "uptime_hours", "uptime"), "number"),
    ("CPU usage (%)", ("cpuPercent", "cpu_percent", "cpu"), "number"),
    ("Memory used (GB)", ("memoryUsedGb", "memory_used_gb"), "number"),
    ("Memory total (GB)", ("memoryTotalGb", "memory_total_gb"), "number"),
    ("Gateway", ("gateway", "defaultGateway", "default_gateway"), "text"),
    ("Public IP", ("publicIp", "public_ip"), "text"),
)
DISK_KEYS = ("disks", "drives")
ENCRYPTION_KEYS = ("diskEncryption", "disk_encryption", "bitlocker")


class RenderedEmail(NamedTuple):
    subject: str
    text: str
    html: str


def _esc(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _pick(mapping: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value not in (None, ""):
            return value
    return None


def _fmt_number(value: Any) -> str:
    """Two decimal places for numbers and numeric strings"""
    if value is None or value == "":
        return NOT_AVAILABLE
    if isinstance(value, bool):
        return str(value)
    try:
        return f"{float(value):.2f}"
    except (TypeError, ValueError):
        return str(value)


def _fmt_value(value: Any) -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def _disk_lines(metrics: dict) -> list[str]:
    disks = _pick(metrics, DISK_KEYS)
    if not isinstance(disks, list):
        return []
    lines = []
    for disk in disks:
        if isinstance(disk, dict):
            name = _pick(disk, ("name", "drive", "mount")) or UNKNOWN
            free = _fmt_number(_pick(disk, ("freeGb", "free_gb", "free")))
            total = _fmt_number(_pick(disk, ("totalGb", "total_gb", "total")))
            lines.append(f"{name}: {free} / {total} GB free")
        elif disk not in (None, ""):
            lines.append(str(disk))
    return lines


def _encryption_lines(metrics: dict) -> list[str]:
    entries = _pick(metrics, ENCRYPTION_KEYS)
    if not isinstance(entries, list):
        return []
    lines = []
    for entry in entries:
        if isinstance(entry, dict):
            drive = _pick(entry, ("drive", "name", "mount")) or UNKNOWN
            status = _pick(entry, ("status", "protectionStatus", "protection_status"))
            lines.append(f"{drive}: {_fmt_value(status)}")
        elif entry not in (None, ""):
            lines.append(str(entry))
    return lines


def _metric_rows(metrics: dict) -> list[tuple[str, str]]:
    rows = []
    for label, keys, kind in METRIC_FIELDS:
        value = _pick(metrics, keys)
        rows.append((label, _fmt_number(value) if kind == "number" else _fmt_value(value)))
    return rows


def _network_rows(status: NetworkStatus) -> list[tuple[str, str]]:
    if status.vpn is None:
        vpn = NOT_AVAILABLE
    elif status.vpn.active:
        details = [part for part in (status.vpn.name, status.vpn.ip) if part]
        vpn = "Active" + (f" ({', '.join(details)})" if details else "")
    else:
        vpn = "Inactive"
    return [
        ("Online", "Yes" if status.online else "No"),
        ("Checked at", status.checked_at or NOT_AVAILABLE),
        ("VPN", vpn),
    ]


def _context_rows(context: Any) -> list[tuple[str, str]]:
    if isinstance(context, dict):
        return [(str(key), _fmt_value(value)) for key, value in context.items()]
    return []


def _detail_label(category: Optional[str]) -> str:
    if category and category.lower() == "printers":
        return "Printer info"
    return "Details"


class TicketRenderer:
    """
    Renders tickets into email content.

    Output is a pure function of the ticket and the brand name; the clock is
    never read here (created_at is resolved by the normalizer).
    """

    def __init__(self, brand_name: str = "Golpac IT"):
        self.brand_name = brand_name

    def render(self, ticket: Ticket) -> RenderedEmail:
        return RenderedEmail(
            subject=self.build_subject(ticket),
            text=self.build_text(ticket),
            html=self.build_html(ticket),
        )

    def build_subject(self, ticket: Ticket) -> str:
        """[IT Support] [High] Printer jam - WS-12 (urgency tag omitted for Normal)"""
        urgency_tag = f"[{ticket.urgency}] " if ticket.urgency != Urgency.NORMAL.value else ""
        return f"[IT Support] {urgency_tag}{ticket.subject} - {ticket.hostname or 'Unknown host'}"

    # ------------------------------------------------------------------
    # Plain text
    # ------------------------------------------------------------------

    def build_text(self, ticket: Ticket) -> str:
        lines = [
            f"New IT support request from {self.brand_name} desktop app",
            "",
            f"Subject: {ticket.subject}",
            f"Urgency: {ticket.urgency}",
            f"Category: {ticket.category or DEFAULT_CATEGORY}",
            f"Requester email: {ticket.requester_email or NOT_PROVIDED}",
            "",
            "Description:",
            ticket.description,
        ]

        lines += self._text_section("System info", [
            f"Computer name: {ticket.hostname or UNKNOWN}",
            f"User: {ticket.username or UNKNOWN}",
            f"OS: {ticket.os}",
            f"IPv4: {ticket.ipv4 or UNKNOWN}",
        ])

        lines += self._text_section("Category details", [
            f"Category: {ticket.category or DEFAULT_CATEGORY}",
            f"{_detail_label(ticket.category)}: {ticket.category_detail or NOT_AVAILABLE}",
        ])

        if ticket.network_status is not None:
            network = [f"{label}: {value}" for label, value in _network_rows(ticket.network_status)]
        else:
            network = [UNAVAILABLE]
        lines += self._text_section("Network status", network)

        lines += self._text_section("System metrics", self._metrics_text(ticket.system_metrics))

        if ticket.app_context is not None:
            context = [f"{key}: {value}" for key, value in _context_rows(ticket.app_context)]
            lines += self._text_section("App context", context or [str(ticket.app_context)])

        if ticket.screenshot_count > 1:
            screenshot = f"Included ({ticket.screenshot_count} files)"
        elif ticket.screenshot_count == 1:
            screenshot = "Included"
        else:
            screenshot = NOT_PROVIDED
        lines += ["", f"Screenshot: {screenshot}"]

        lines += self._text_section("Meta", [
            f"App version: {ticket.app_version}",
            f"Created at: {ticket.created_at}",
        ])
        return "\n".join(lines).strip()

    @staticmethod
    def _text_section(title: str, body: list[str]) -> list[str]:
        return ["", TEXT_RULE, title, TEXT_RULE, *body]

    @staticmethod
    def _metrics_text(metrics: Optional[dict]) -> list[str]:
        if metrics is None:
            return [UNAVAILABLE]
        lines = [f"{label}: {value}" for label, value in _metric_rows(metrics)]

        disks = _disk_lines(metrics)
        if disks:
            lines.append("Drives:")
            lines += [f"  - {line}" for line in disks]
        else:
            lines.append(f"Drives: {NOT_AVAILABLE}")

        encryption = _encryption_lines(metrics)
        if encryption:
            lines.append("Disk encryption:")
            lines += [f"  - {line}" for line in encryption]
        else:
            lines.append(f"Disk encryption: {NOT_AVAILABLE}")
        return lines

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def build_html(self, ticket: Ticket) -> str:
        urgency_color = URGENCY_COLORS.get(ticket.urgency.lower(), NEUTRAL_COLOR)

        category_badge = ""
        if ticket.category and ticket.category.lower() != DEFAULT_CATEGORY.lower():
            category_badge = _badge(ticket.category.upper(), color="#374151", background="#e5e7eb")

        system_rows = _rows_html([
            ("Computer name", ticket.hostname or UNKNOWN),
            ("User", ticket.username or UNKNOWN),
            ("OS", ticket.os),
            ("IPv4", ticket.ipv4 or UNKNOWN),
        ])
        category_rows = _rows_html([
            ("Category", ticket.category or DEFAULT_CATEGORY),
            (_detail_label(ticket.category), ticket.category_detail or NOT_AVAILABLE),
        ])

        if ticket.network_status is not None:
            network_html = _table_html(_rows_html(_network_rows(ticket.network_status)))
        else:
            network_html = _placeholder_html(UNAVAILABLE)

        sections = [
            _heading_html("System info"),
            _table_html(system_rows),
            _heading_html("Category details"),
            _table_html(category_rows),
            _heading_html("Network status"),
            network_html,
            _heading_html("System metrics"),
            self._metrics_html(ticket.system_metrics),
        ]
        if ticket.app_context is not None:
            sections += [_heading_html("App context"), self._context_html(ticket.app_context)]
        sections += [_heading_html("Screenshot"), self._screenshots_html(ticket)]

        return HTML_TEMPLATE.format(
            brand=_esc(self.brand_name),
            app_version=_esc(ticket.app_version),
            created_at=_esc(ticket.created_at),
            subject=_esc(ticket.subject),
            urgency_badge=_badge(ticket.urgency, color="#ffffff", background=urgency_color),
            category_badge=category_badge,
            requester_email=_esc(ticket.requester_email or NOT_PROVIDED),
            description=_esc(ticket.description),
            sections="\n".join(sections),
        )

    @staticmethod
    def _metrics_html(metrics: Optional[dict]) -> str:
        if metrics is None:
            return _placeholder_html(UNAVAILABLE)
        rows = _metric_rows(metrics)
        rows.append(("Drives", _list_html(_disk_lines(metrics))))
        rows.append(("Disk encryption", _list_html(_encryption_lines(metrics))))
        return _table_html(_rows_html(rows, raw_labels=("Drives", "Disk encryption")))

    @staticmethod
    def _context_html(context: Any) -> str:
        rows = _context_rows(context)
        if rows:
            return _table_html(_rows_html(rows))
        return f'<div style="font-size:13px;color:#111827;white-space:pre-wrap;">{_esc(context)}</div>'

    @staticmethod
    def _screenshots_html(ticket: Ticket) -> str:
        if not ticket.screenshots:
            return (
                '<div style="font-size:13px;color:#9ca3af;border-radius:8px;'
                'border:1px dashed #d1d5db;padding:10px 12px;">No screenshot attached.</div>'
            )
        images = []
        for attachment in ticket.screenshots:
            images.append(
                '<div style="margin-top:6px;border-radius:8px;overflow:hidden;'
                'border:1px solid #e5e7eb;background:#000;">'
                f'<img src="cid:{_esc(attachment.content_id)}" alt="{_esc(attachment.filename)}" '
                'style="display:block;width:100%;max-height:500px;object-fit:contain;background:#000;" />'
                "</div>"
            )
        return "\n".join(images)


def _badge(text: str, color: str, background: str) -> str:
    return (
        '<span style="display:inline-block;margin-left:8px;padding:2px 10px;border-radius:999px;'
        "font-size:11px;font-weight:600;letter-spacing:0.03em;text-transform:uppercase;"
        f'color:{color};background:{background};">{_esc(text)}</span>'
    )


def _heading_html(title: str) -> str:
    return f'<h3 style="margin:18px 0 6px;font-size:14px;color:#111827;">{_esc(title)}</h3>'


def _table_html(rows_html: str) -> str:
    return (
        '<table cellpadding="0" cellspacing="0" style="width:100%;font-size:13px;color:#111827;">'
        f"{rows_html}</table>"
    )


def _rows_html(rows: Iterable[tuple[str, str]], raw_labels: Iterable[str] = ()) -> str:
    """Two-column rows; values are escaped unless their label is listed in raw_labels"""
    raw_labels = set(raw_labels)
    out = []
    for label, value in rows:
        value_html = value if label in raw_labels else _esc(value)
        out.append(
            "<tr>"
            f'<td style="padding:4px 0;color:#6b7280;width:140px;vertical-align:top;">{_esc(label)}</td>'
            f'<td style="padding:4px 0;">{value_html}</td>'
            "</tr>"
        )
    return "".join(out)


def _list_html(lines: list[str]) -> str:
    if not lines:
        return NOT_AVAILABLE
    items = "".join(f"<li>{_esc(line)}</li>" for line in lines)
    return f'<ul style="margin:0;padding-left:18px;">{items}</ul>'


def _placeholder_html(text: str) -> str:
    return f'<div style="font-size:13px;color:#9ca3af;">{_esc(text)}</div>'


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <title>New IT Support Request</title>
  </head>
  <body style="margin:0;padding:0;background:#f3f4f6;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',sans-serif;">
    <table width="100%" cellpadding="0" cellspacing="0" style="padding:24px 0;">
      <tr>
        <td align="center">
          <table width="600" cellpadding="0" cellspacing="0" style="background:#ffffff;border-radius:12px;overflow:hidden;border:1px solid #e5e7eb;">
            <tr>
              <td style="padding:16px 20px;border-bottom:1px solid #e5e7eb;background:linear-gradient(135deg,#2563eb,#1d4ed8);color:#ffffff;">
                <table width="100%">
                  <tr>
                    <td style="font-size:18px;font-weight:600;">{brand} Support</td>
                    <td align="right" style="font-size:12px;color:#e5e7eb;">App v{app_version} &middot; {created_at}</td>
                  </tr>
                </table>
              </td>
            </tr>
            <tr>
              <td style="padding:20px;">
                <p style="margin:0 0 12px;font-size:14px;color:#6b7280;">
                  New IT support request submitted from the {brand} desktop app.
                </p>
                <h2 style="margin:0 0 4px;font-size:18px;color:#111827;">
                  {subject}
                  {urgency_badge}
                  {category_badge}
                </h2>
                <table cellpadding="0" cellspacing="0" style="width:100%;margin:10px 0 16px;">
                  <tr>
                    <td style="font-size:13px;color:#6b7280;width:140px;">Requester email</td>
                    <td style="font-size:13px;color:#111827;">{requester_email}</td>
                  </tr>
                  <tr>
                    <td style="font-size:13px;color:#6b7280;width:140px;">Created at</td>
                    <td style="font-size:13px;color:#111827;">{created_at}</td>
                  </tr>
                </table>
                <h3 style="margin:0 0 6px;font-size:14px;color:#111827;">Description</h3>
                <div style="font-size:13px;color:#111827;background:#f9fafb;border:1px solid #e5e7eb;border-radius:8px;padding:10px 12px;white-space:pre-wrap;">{description}</div>
{sections}
                <p style="margin:18px 0 0;font-size:11px;color:#9ca3af;">
                  This email was generated automatically by the {brand} Support desktop app.
                </p>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>"""


# Default renderer instance
default_renderer = TicketRenderer()


def render_ticket(ticket: Ticket) -> RenderedEmail:
    """Convenience function to render a ticket"""
    return default_renderer.render(ticket)
