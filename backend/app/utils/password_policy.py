"""
Password Policy Utilities
Provides password validation rules.
"""

from typing import List

MIN_PASSWORD_LENGTH = 8


def validate_password(password: str) -> List[str]:
    """
    Validate password strength and return a list of errors.
    """
    errors: List[str] = []

    if not password:
        return ["Password is required"]

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    return errors
