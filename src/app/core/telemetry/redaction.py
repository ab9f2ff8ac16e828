"""Helpers that keep raw email addresses out of logs and spans."""

import re

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


def looks_like_email(value: str) -> bool:
    """Return True for any single-token ``local@domain`` string.

    The check is deliberately loose: values such as ``user@host`` are
    masked too, since a false positive only hides a harmless value.
    """
    return bool(_EMAIL_RE.match(value))


def mask_email(email: str | None) -> str:
    """Keep the first character and the domain: ``john@x.com`` -> ``j***@x.com``."""
    if not email:
        return "[empty]"
    at_index = email.find("@")
    if at_index < 0:
        return "[invalid]"
    local_part, domain = email[:at_index], email[at_index:]
    if len(local_part) <= 1:
        return f"*{domain}"
    return f"{local_part[0]}***{domain}"


def email_domain(email: str | None) -> str:
    """Return the part after ``@``."""
    if not email:
        return "[empty]"
    at_index = email.find("@")
    if at_index < 0:
        return "[invalid]"
    return email[at_index + 1:]
