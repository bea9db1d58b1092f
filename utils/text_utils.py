"""
Text utilities for customer records built from order imports.
"""

from typing import Optional


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize an email for customer matching.

    - "  Jean.Dupont@Example.COM " -> "jean.dupont@example.com"

    Returns:
        Lower-cased, stripped email, or None if input is empty
    """
    if not email:
        return None
    email = email.strip().lower()
    return email or None


def split_customer_name(name: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Split a full name on the first space into (first_name, last_name).

    - "Jean Dupont" -> ("Jean", "Dupont")
    - "Jean de la Fontaine" -> ("Jean", "de la Fontaine")
    - "Prince" -> ("Prince", None)
    - None -> (None, None)
    """
    if not name or not name.strip():
        return None, None

    parts = name.strip().split(" ", 1)
    first_name = parts[0] or None
    last_name = parts[1].strip() if len(parts) > 1 else None
    return first_name, last_name or None


def truncate(text: Optional[str], max_length: int = 255) -> Optional[str]:
    """Trim text to a storage limit, keeping None as None."""
    if text is None:
        return None
    return text[:max_length]
