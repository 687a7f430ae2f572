"""Input validation helpers."""

import re
from typing import Any, Dict, List, Mapping, Optional

from core.constants import RegistrationDefaults
from core.exceptions import ValidationError


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
EXTERNAL_ID_RE = re.compile(r"^[A-Za-z0-9._\-]+$")


def validate_full_name(value: str) -> bool:
    if not value:
        return False
    stripped = value.strip()
    return (
        RegistrationDefaults.NAME_MIN_LENGTH
        <= len(stripped)
        <= RegistrationDefaults.NAME_MAX_LENGTH
    )


def validate_external_id(value: str) -> bool:
    if not value:
        return False
    stripped = value.strip()
    if not (
        RegistrationDefaults.EXTERNAL_ID_MIN_LENGTH
        <= len(stripped)
        <= RegistrationDefaults.EXTERNAL_ID_MAX_LENGTH
    ):
        return False
    return bool(EXTERNAL_ID_RE.match(stripped))


def validate_email(value: str, domain: str = "") -> bool:
    """Validate an email address, optionally restricted to one domain."""
    if not value or not EMAIL_RE.match(value.strip()):
        return False
    if domain:
        return value.strip().lower().endswith(f"@{domain.lower()}")
    return True


def validate_phone(value: str) -> bool:
    """Validate phone numbers - accepts any international format"""
    if not value:
        return False

    clean_phone = re.sub(r'[\s\-\(\)]', '', value)

    # E.164: 7 to 15 digits, optional leading +
    return bool(re.match(r'^\+?[0-9]{7,15}$', clean_phone))


def normalize_phone(value: str) -> str:
    """Strip separators from a phone number."""
    if not value:
        return value
    return re.sub(r'[\s\-\(\)]', '', value)


def _optional_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def validate_registration(payload: Mapping[str, Any], email_domain: str = "") -> Dict[str, Any]:
    """Validate a registration form and return the cleaned fields.

    Every problem is collected so the form can highlight all fields at once.

    Raises:
        ValidationError: with ``details`` listing ``{field, message}`` pairs
    """
    errors: List[Dict[str, str]] = []

    name = str(payload.get("name") or "").strip()
    external_id = str(payload.get("external_id") or "").strip()
    email = str(payload.get("email") or "").strip().lower()
    session_token = str(payload.get("session_token") or "").strip()
    team = _optional_str(payload, "team")
    mobile = _optional_str(payload, "mobile")

    if not name:
        errors.append({"field": "name", "message": "Name is required"})
    elif not validate_full_name(name):
        errors.append({
            "field": "name",
            "message": (
                f"Name must be {RegistrationDefaults.NAME_MIN_LENGTH}-"
                f"{RegistrationDefaults.NAME_MAX_LENGTH} characters long"
            ),
        })

    if not external_id:
        errors.append({"field": "external_id", "message": "ID is required"})
    elif not validate_external_id(external_id):
        errors.append({
            "field": "external_id",
            "message": (
                f"ID must be {RegistrationDefaults.EXTERNAL_ID_MIN_LENGTH}-"
                f"{RegistrationDefaults.EXTERNAL_ID_MAX_LENGTH} letters, digits, '.', '_' or '-'"
            ),
        })

    if not email:
        errors.append({"field": "email", "message": "Email is required"})
    elif not validate_email(email):
        errors.append({"field": "email", "message": "Please enter a valid email address"})
    elif not validate_email(email, email_domain):
        errors.append({"field": "email", "message": f"Only @{email_domain} email addresses are allowed"})

    if not session_token:
        errors.append({"field": "session_token", "message": "Session token is required"})

    if team and len(team) > RegistrationDefaults.TEAM_MAX_LENGTH:
        errors.append({"field": "team", "message": "Team name is too long"})

    if mobile:
        if not validate_phone(mobile):
            errors.append({"field": "mobile", "message": "Please enter a valid phone number"})
        else:
            mobile = normalize_phone(mobile)

    if errors:
        raise ValidationError("Validation failed", details=errors)

    return {
        "name": name,
        "external_id": external_id,
        "email": email,
        "session_token": session_token,
        "team": team,
        "mobile": mobile,
    }
