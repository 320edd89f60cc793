"""
Email normalization helpers.

Collapses mailbox aliases so look-alike accounts share one key:
- Lowercase everything
- Strip plus-addressing tags (john+promo@x.com -> john@x.com)
- Drop dots for providers that ignore them (j.o.h.n@gmail.com -> john@gmail.com)
"""

from typing import Optional

# Providers whose mailboxes ignore dots in the local part
DOT_INSENSITIVE_DOMAINS = frozenset({"gmail.com", "googlemail.com"})


def split_email(email: str) -> Optional[tuple[str, str]]:
    """Split into (local, domain), or None when malformed."""
    if not email:
        return None
    parts = email.strip().lower().split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def email_domain(email: str) -> str:
    """Lowercased domain, or '' for malformed addresses."""
    parts = split_email(email)
    return parts[1] if parts else ""


def normalize_email(email: str) -> str:
    """
    Canonical mailbox key for similarity lookups.

    Malformed addresses are returned lowercased and stripped.
    """
    parts = split_email(email)
    if parts is None:
        return (email or "").strip().lower()

    local, domain = parts
    if domain in DOT_INSENSITIVE_DOMAINS:
        local = local.replace(".", "")
    local = local.split("+", 1)[0]
    return f"{local}@{domain}"
