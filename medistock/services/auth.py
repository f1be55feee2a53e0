"""Authentication boundary - AuthRepository interface and its Cognito implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from medistock.models.errors import (
    AuthError,
    EmailAlreadyInUseError,
    InvalidEmailError,
    InvalidPasswordError,
    NetworkError,
    NotAuthenticatedError,
    UnknownAuthError,
    UserNotFoundError,
    WeakPasswordError,
    WrongPasswordError,
)
from medistock.models.inventory import User
from medistock.repositories.base import UserRepository
from medistock.subscriptions import ChangeFeed, Subscription
from medistock.validation import MIN_PASSWORD_LENGTH, is_valid_email

logger = logging.getLogger(__name__)

CURRENT_USER_TOPIC = "auth:current_user"

# Cognito error code -> AuthError
COGNITO_ERRORS: dict[str, type[AuthError]] = {
    "NotAuthorizedException": WrongPasswordError,
    "UserNotFoundException": UserNotFoundError,
    "UsernameExistsException": EmailAlreadyInUseError,
    "InvalidPasswordException": WeakPasswordError,
    "InvalidParameterException": InvalidEmailError,
    "UserNotConfirmedException": InvalidEmailError,
}


def map_auth_error(error: Exception) -> AuthError:
    if isinstance(error, AuthError):
        return error
    if isinstance(error, EndpointConnectionError):
        return NetworkError()
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        error_cls = COGNITO_ERRORS.get(code)
        if error_cls is not None:
            return error_cls()
    return UnknownAuthError(error)


class AuthRepository(ABC):
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed = feed or ChangeFeed()
        self._current_user: Optional[User] = None

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    def require_user(self) -> User:
        if self._current_user is None:
            raise NotAuthenticatedError()
        return self._current_user

    def observe_current_user(self, callback: Callable[[Optional[User]], None]) -> Subscription:
        subscription = self.feed.subscribe(CURRENT_USER_TOPIC, callback)
        callback(self._current_user)
        return subscription

    def _set_current_user(self, user: Optional[User]) -> None:
        self._current_user = user
        self.feed.publish(CURRENT_USER_TOPIC, user)

    @abstractmethod
    def sign_in(self, email: str, password: str) -> User:
        ...

    @abstractmethod
    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> User:
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...


class CognitoAuthRepository(AuthRepository):
    """Amazon Cognito user-pool client (USER_PASSWORD_AUTH flow)."""

    def __init__(
        self,
        client_id: str,
        cognito_client: Optional[Any] = None,
        region_name: str = "us-west-2",
        users: Optional[UserRepository] = None,
        feed: Optional[ChangeFeed] = None,
    ):
        super().__init__(feed)
        self.client_id = client_id
        self.cognito = cognito_client or boto3.client("cognito-idp", region_name=region_name)
        self.users = users
        self._access_token: Optional[str] = None

    def sign_in(self, email: str, password: str) -> User:
        if not is_valid_email(email):
            raise InvalidEmailError()
        if not password:
            raise InvalidPasswordError()
        try:
            resp = self.cognito.initiate_auth(
                AuthFlow="USER_PASSWORD_AUTH",
                ClientId=self.client_id,
                AuthParameters={"USERNAME": email, "PASSWORD": password},
            )
            token = resp["AuthenticationResult"]["AccessToken"]
            profile = self.cognito.get_user(AccessToken=token)
        except (ClientError, BotoCoreError) as e:
            logger.warning("Sign-in failed for %s: %s", email, e)
            raise map_auth_error(e) from e

        self._access_token = token
        user = self._user_from_profile(profile, email)
        self._set_current_user(user)
        logger.info("Signed in: %s", user.id)
        return user

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> User:
        if not is_valid_email(email):
            raise InvalidEmailError()
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise WeakPasswordError()
        attributes = [{"Name": "email", "Value": email}]
        if display_name:
            attributes.append({"Name": "name", "Value": display_name})
        try:
            resp = self.cognito.sign_up(
                ClientId=self.client_id,
                Username=email,
                Password=password,
                UserAttributes=attributes,
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("Sign-up failed for %s: %s", email, e)
            raise map_auth_error(e) from e

        user = User(id=resp["UserSub"], email=email, display_name=display_name)
        if self.users is not None:
            self.users.save_user(user)
        logger.info("Signed up: %s", user.id)
        return user

    def sign_out(self) -> None:
        if self._access_token:
            try:
                self.cognito.global_sign_out(AccessToken=self._access_token)
            except (ClientError, BotoCoreError) as e:
                raise map_auth_error(e) from e
        self._access_token = None
        self._set_current_user(None)

    def _user_from_profile(self, profile: dict, email: str) -> User:
        attributes = {a["Name"]: a["Value"] for a in profile.get("UserAttributes", [])}
        return User(
            id=attributes.get("sub") or profile["Username"],
            email=attributes.get("email", email),
            display_name=attributes.get("name"),
        )
