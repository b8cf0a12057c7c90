# Overview: Password hashing and credential verification for employees.

"""
Authentication Service

Employees are the users: an employee with a login and a password hash can
sign in. Passwords are hashed with bcrypt; the cost factor comes from
HASH_SALT_ROUNDS.

SECURITY NOTES:
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""
from __future__ import annotations

import re
from typing import Optional

import bcrypt

from ..entities import User
from ..repositories.employee import EmployeeRepository

DEFAULT_ROUNDS = 12

# Compared against when the login is unknown, so both paths cost one bcrypt check
_DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=4)).decode("utf-8")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters (bcrypt ignores anything past 72 bytes)
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password.encode("utf-8")) > 72:
        raise PasswordValidationError("Password must be at most 72 bytes long")

    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Hash password using bcrypt with the given cost factor.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    missing or malformed hash).
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(employees: EmployeeRepository, login: str, password: str) -> Optional[User]:
    """
    Authenticate an employee by login and password.

    Returns the User (without its hash) if credentials are valid, None
    otherwise. Unknown logins and wrong passwords are indistinguishable.
    """
    user = employees.select_user(login)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    user.password_hash = None
    return user
