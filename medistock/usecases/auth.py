"""Authentication use-cases."""

from __future__ import annotations

from typing import Optional

from medistock.models.inventory import User
from medistock.services.auth import AuthRepository
from medistock.usecases.base import UseCase


class SignInUseCase(UseCase):
    def __init__(self, auth: AuthRepository):
        self.auth = auth

    def execute(self, email: str, password: str) -> User:
        return self.auth.sign_in(email.strip(), password)


class SignUpUseCase(UseCase):
    def __init__(self, auth: AuthRepository):
        self.auth = auth

    def execute(self, email: str, password: str, display_name: Optional[str] = None) -> User:
        return self.auth.sign_up(email.strip(), password, display_name)


class SignOutUseCase(UseCase):
    def __init__(self, auth: AuthRepository):
        self.auth = auth

    def execute(self) -> None:
        self.auth.sign_out()


class GetUserUseCase(UseCase):
    def __init__(self, auth: AuthRepository):
        self.auth = auth

    def execute(self) -> Optional[User]:
        return self.auth.current_user
