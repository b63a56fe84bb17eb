"""
Parser for SSH login notifications.

A notification is one text line: ``<username> <address> <port>``.
Tokens are split from the right, so the username is whatever precedes the
last two tokens and may itself contain the delimiter.
"""

import ipaddress
from typing import Optional

from shared.schemas.dto import ParsedEvent
from shared.utils.errors import ParseError


def parse_payload(raw: bytes, delimiter: Optional[str] = None) -> ParsedEvent:
    """
    Parse one notification payload.

    Args:
        raw: Bytes received on either transport
        delimiter: Token separator; None splits on runs of whitespace

    Returns:
        The parsed event

    Raises:
        ParseError: If any of the three fields cannot be extracted
    """
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        raise ParseError("Empty payload")
    if len(text.splitlines()) > 1:
        raise ParseError("Payload spans more than one line")

    parts = text.rsplit(delimiter, 2)
    if len(parts) < 3:
        missing = ("address", "port")[len(parts) - 1]
        raise ParseError(f"Missing {missing} in payload {text!r}", field=missing)

    username, address, port_token = (part.strip() for part in parts)

    if not username:
        raise ParseError("Missing username", field="username")

    try:
        ipaddress.ip_address(address)
    except ValueError:
        raise ParseError(f"Invalid source address {address!r}", field="address")

    if not (port_token.isascii() and port_token.isdigit()):
        raise ParseError(f"Invalid source port {port_token!r}", field="port")
    port = int(port_token)
    if not 0 < port <= 65535:
        raise ParseError(f"Source port out of range: {port}", field="port")

    return ParsedEvent(source_address=address, source_port=port, username=username)


def format_payload(event: ParsedEvent, delimiter: Optional[str] = None) -> bytes:
    """Render an event as the line a notifying host sends."""
    sep = " " if delimiter is None else delimiter
    return sep.join(
        (event.username, event.source_address, str(event.source_port))
    ).encode("utf-8")
