"""Account use case — registration and credential checks."""

from __future__ import annotations

from loguru import logger

from ashteams_chat.application.exceptions import UnauthorizedError, ValidationError
from ashteams_chat.application.infrastructure.passwords import hash_password, verify_password
from ashteams_chat.domain.models import User
from ashteams_chat.domain.protocols import IChatStore


class AccountUseCase:
    def __init__(self, store: IChatStore) -> None:
        self.store = store

    def register(self, email: str | None, password: str | None) -> User:
        """Create an account.

        Raises:
            ValidationError: If email or password is missing.
            DuplicateEmailError: If the email is already registered.
        """
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.store.create_user(email, hash_password(password))
        logger.info("Registered user {} ({})", user.id, email)
        return user

    def authenticate(self, email: str | None, password: str | None) -> User:
        """Return the user whose credentials match, else raise ``UnauthorizedError``."""
        user = self.store.get_user_by_email((email or "").strip())
        if user is None or not password or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid email or password")
        return user

    def get_user(self, user_id: int) -> User | None:
        return self.store.get_user(user_id)
