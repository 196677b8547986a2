"""
Validators
==========

Validation helpers for values that arrive outside a request body.
"""

import re

from taskboard.core.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email(email: str) -> str:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        Validated email (lowercase)

    Raises:
        ValidationError: If email is invalid
    """
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(
            message="Invalid email format",
            field="email",
        )

    return email.lower()
