"""Password strength rules applied when a password is changed."""

from __future__ import annotations

import re

SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

COMMON_PASSWORDS = (
    "password", "123456", "123456789", "qwerty", "abc123",
    "password123", "123123", "admin", "root", "user",
)


def check_password_strength(password: str) -> list[str]:
    """Return every rule the password breaks; an empty list means it is acceptable."""
    errors = []

    if len(password) < 8:
        errors.append("Password must be at least 8 characters")
    if len(password) > 128:
        errors.append("Password cannot exceed 128 characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one upper case letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lower case letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one digit")
    if not SPECIAL_CHARACTERS.search(password):
        errors.append("Password must contain at least one special character")

    lowered = password.lower()
    if any(common in lowered for common in COMMON_PASSWORDS):
        errors.append("Password must not contain a common weak password")

    return errors
