#!/usr/bin/env python3
"""
Support Relay Preview CLI
Normalizes a saved ticket payload and renders the email without sending it
"""

import argparse
import json
import sys
from pathlib import Path

import structlog

from services.normalize.normalizer import TicketNormalizer, TicketValidationError
from services.render.renderer import RenderedEmail, TicketRenderer

logger = structlog.get_logger()


def preview_from_file(
    input_file: str,
    brand_name: str = "Golpac IT",
) -> RenderedEmail:
    """Normalize and render a ticket payload stored as JSON"""
    with open(input_file, "r", encoding="utf-8") as f:
        raw = json.load(f)

    ticket = TicketNormalizer().normalize(raw)
    logger.info("Normalized ticket", subject=ticket.subject, screenshots=ticket.screenshot_count)
    return TicketRenderer(brand_name=brand_name).render(ticket)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Support Relay preview CLI")
    parser.add_argument("input", help="Ticket payload JSON file")
    parser.add_argument("--html", help="Write the HTML body to this file")
    parser.add_argument("--text", help="Write the plain-text body to this file")
    parser.add_argument("--brand", default="Golpac IT", help="Brand name used in the email")

    args = parser.parse_args(argv)

    try:
        rendered = preview_from_file(args.input, brand_name=args.brand)
    except TicketValidationError as e:
        print(f"❌ Invalid ticket: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"❌ Could not read {args.input}: {e}", file=sys.stderr)
        return 1

    print(f"Subject: {rendered.subject}")

    if args.html:
        Path(args.html).write_text(rendered.html, encoding="utf-8")
        print(f"   HTML saved to {args.html}")
    if args.text:
        Path(args.text).write_text(rendered.text, encoding="utf-8")
        print(f"   Text saved to {args.text}")
    if not args.html and not args.text:
        print()
        print(rendered.text)

    return 0


if __name__ == "__main__":
    sys.exit(main())
