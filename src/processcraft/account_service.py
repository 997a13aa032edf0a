from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from .auth import hash_password, verify_password
from .models import UserEntity
from .repositories import Repository
from .results import FORM_FIELD, Err, ErrorKind, Ok, Result, field_errors_from, validation_error
from .schemas import UserCreate

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class AccountService:
    """Registration and credential checks."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def register(self, name: str, email: str, password: str) -> Result[UserEntity]:
        try:
            data = UserCreate(name=name, email=email, password=password)
        except PydanticValidationError as exc:
            return validation_error("Invalid input. Please check the fields.", field_errors_from(exc))

        password_hash = hash_password(data.password)
        duplicate = validation_error(
            "Registration failed.", {"email": ["An account with this email already exists."]}
        )
        try:
            if self._repo.get_user_by_email(data.email) is not None:
                return duplicate
            user = self._repo.create_user(data.email, data.name, password_hash)
        except (ValueError, sqlite3.IntegrityError):
            # Another registration took the email after the lookup
            logger.info("Registration lost a race for %s", data.email)
            return duplicate
        except Exception:
            logger.exception("Registration failed for %s", data.email)
            return Err(
                ErrorKind.PERSISTENCE,
                "An unexpected error occurred during registration. Please try again.",
                {FORM_FIELD: ["An internal error occurred."]},
            )

        logger.info("Registered user %s", user["id"])
        return Ok(user, "Registration successful! Please log in.")

    def authenticate(self, email: str, password: str) -> Optional[UserEntity]:
        """Return the user for valid credentials, otherwise None."""
        user = self._repo.get_user_by_email(email)
        if user is None:
            logger.info("Login failed: unknown email")
            return None
        if not verify_password(password, user["password_hash"]):
            logger.info("Login failed: wrong password for user %s", user["id"])
            return None
        logger.info("User %s authenticated", user["id"])
        return user
