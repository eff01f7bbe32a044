"""Operator input validation for the HTTP API."""

from email_validator import EmailNotValidError, validate_email
from fastapi import HTTPException


def normalize_email(addr: str) -> str:
    """Return the normalized, lowercased address or raise HTTP 400."""
    s = (addr or "").strip()
    if not s:
        raise HTTPException(status_code=400, detail="Email is required")
    try:
        result = validate_email(s, check_deliverability=False)
    except EmailNotValidError as e:
        raise HTTPException(status_code=400, detail=f"Invalid email: {e}") from e
    return result.normalized.lower()
