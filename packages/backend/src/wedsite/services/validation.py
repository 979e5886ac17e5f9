"""Input rules for usernames, slugs, passwords and display names.

Applied in the services, so the API and the CLI enforce the same rules.
Every check raises wedsite.errors.ValidationError with a specific code.
"""

import re

from wedsite.errors import ValidationError

SLUG_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
USERNAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]{2,29}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SLUG_MIN, SLUG_MAX = 4, 50
DISPLAY_NAME_MIN, DISPLAY_NAME_MAX = 3, 100
NEW_ACCOUNT_PASSWORD_MIN = 8
CHANGED_PASSWORD_MIN = 6


def validate_slug(slug: str) -> str:
    slug = slug.strip().lower()
    if not SLUG_MIN <= len(slug) <= SLUG_MAX:
        raise ValidationError(
            f"Slug must be between {SLUG_MIN} and {SLUG_MAX} characters",
            "INVALID_SLUG",
        )
    if not SLUG_RE.match(slug) or "--" in slug:
        raise ValidationError(
            "Slug may only contain lowercase letters, digits and single hyphens, "
            "and must start and end with a letter or digit",
            "INVALID_SLUG",
        )
    return slug


def validate_username(username: str) -> str:
    username = username.strip()
    if not USERNAME_RE.match(username):
        raise ValidationError(
            "Username must be 3-30 characters, start with a letter and contain "
            "only letters, digits and underscores",
            "INVALID_USERNAME",
        )
    return username.lower()


def validate_display_name(display_name: str) -> str:
    display_name = display_name.strip()
    if not DISPLAY_NAME_MIN <= len(display_name) <= DISPLAY_NAME_MAX:
        raise ValidationError(
            f"Display name must be between {DISPLAY_NAME_MIN} and "
            f"{DISPLAY_NAME_MAX} characters",
            "INVALID_DISPLAY_NAME",
        )
    return display_name


def validate_email(email: str | None) -> str | None:
    if email is None or not email.strip():
        return None
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address", "INVALID_EMAIL")
    return email


def validate_password(password: str, min_length: int = NEW_ACCOUNT_PASSWORD_MIN) -> str:
    if len(password) < min_length:
        raise ValidationError(
            f"Password must be at least {min_length} characters",
            "WEAK_PASSWORD",
        )
    return password
