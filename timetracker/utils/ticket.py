import re

TICKET_PATTERN = re.compile(r"^[A-Z]+[A-Z0-9_:]*-\d+$")


def check_ticket_format(ticket: str) -> bool:
    """``ABC-123``, ``A1_B:C-7``; lowercase keys are not tickets."""
    return bool(TICKET_PATTERN.match(ticket or ""))


def ticket_prefix(ticket: str) -> str:
    """``ABC-123`` -> ``ABC``."""
    return ticket.rsplit("-", 1)[0]
