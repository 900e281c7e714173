"""
Account field validation shared by the admin user console and the caller's
own profile endpoints.
"""
from models.user import User, PREFERENCE_FIELDS, PREFERENCE_CHOICES
from utils.errors import ValidationError


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def clean_email(value) -> str:
    email = (value or "").strip().lower() if isinstance(value, str) else ""
    if not is_valid_email(email):
        raise ValidationError("Invalid email", field="email")
    return email


def apply_profile(user: User, data: dict):
    for name, max_len in (("full_name", 120), ("phone_number", 30)):
        if name in data and data[name] is not None:
            value = data[name]
            if not isinstance(value, str) or len(value.strip()) > max_len:
                raise ValidationError(f"Invalid {name}", field=name)
            setattr(user, name, value.strip() or None)


def merge_ai_preferences(current: dict, data: dict) -> dict:
    """Fields absent from ``data`` keep their stored value; null clears one."""
    merged = {name: (current or {}).get(name) for name in PREFERENCE_FIELDS}

    for name in PREFERENCE_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if value is None:
            merged[name] = None
            continue

        if name == "default_passengers":
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 10:
                raise ValidationError("default_passengers must be an integer between 1 and 10",
                                      field=name)
        elif value not in PREFERENCE_CHOICES[name]:
            raise ValidationError(
                f"{name} must be one of: {', '.join(PREFERENCE_CHOICES[name])}",
                field=name,
            )
        merged[name] = value

    return merged
