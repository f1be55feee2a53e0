"""Cognito auth repository and auth use-case tests."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from medistock.models.errors import (
    EmailAlreadyInUseError,
    InvalidEmailError,
    NetworkError,
    NotAuthenticatedError,
    UnknownAuthError,
    WeakPasswordError,
    WrongPasswordError,
)
from medistock.repositories.memory import InMemoryRepositoryFactory
from medistock.services.auth import CognitoAuthRepository, map_auth_error
from medistock.usecases.auth import GetUserUseCase, SignInUseCase, SignOutUseCase, SignUpUseCase


def _create_auth(users=None):
    cognito = MagicMock()
    cognito.initiate_auth.return_value = {"AuthenticationResult": {"AccessToken": "token-1"}}
    cognito.get_user.return_value = {
        "Username": "nurse",
        "UserAttributes": [
            {"Name": "sub", "Value": "user-1"},
            {"Name": "email", "Value": "nurse@example.com"},
            {"Name": "name", "Value": "Camille"},
        ],
    }
    cognito.sign_up.return_value = {"UserSub": "user-2"}
    return CognitoAuthRepository("client-1", cognito_client=cognito, users=users), cognito


def _cognito_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "InitiateAuth")


class TestSignIn:
    def test_sign_in_sets_current_user(self):
        auth, cognito = _create_auth()
        user = SignInUseCase(auth).execute(" nurse@example.com ", "secret1")
        assert user.id == "user-1"
        assert user.display_name == "Camille"
        assert auth.current_user == user
        kwargs = cognito.initiate_auth.call_args.kwargs
        assert kwargs["AuthFlow"] == "USER_PASSWORD_AUTH"
        assert kwargs["AuthParameters"]["USERNAME"] == "nurse@example.com"
        cognito.get_user.assert_called_once_with(AccessToken="token-1")

    def test_wrong_password(self):
        auth, cognito = _create_auth()
        cognito.initiate_auth.side_effect = _cognito_error("NotAuthorizedException")
        with pytest.raises(WrongPasswordError):
            auth.sign_in("nurse@example.com", "nope")
        assert auth.current_user is None

    def test_invalid_email_short_circuits(self):
        auth, cognito = _create_auth()
        with pytest.raises(InvalidEmailError):
            auth.sign_in("not-an-email", "secret1")
        cognito.initiate_auth.assert_not_called()

    def test_observers_see_changes(self):
        auth, _ = _create_auth()
        seen = []
        auth.observe_current_user(seen.append)
        auth.sign_in("nurse@example.com", "secret1")
        auth.sign_out()
        assert seen[0] is None
        assert seen[1].id == "user-1"
        assert seen[2] is None


class TestSignUp:
    def test_sign_up_saves_user(self):
        repositories = InMemoryRepositoryFactory()
        auth, cognito = _create_auth(users=repositories.users())
        user = SignUpUseCase(auth).execute("new@example.com", "secret1", "Alex")
        assert user.id == "user-2"
        assert repositories.users().get_user("user-2").email == "new@example.com"
        attributes = cognito.sign_up.call_args.kwargs["UserAttributes"]
        assert {"Name": "name", "Value": "Alex"} in attributes

    def test_weak_password(self):
        auth, cognito = _create_auth()
        with pytest.raises(WeakPasswordError):
            SignUpUseCase(auth).execute("new@example.com", "12345")
        cognito.sign_up.assert_not_called()

    def test_invalid_email(self):
        auth, _ = _create_auth()
        with pytest.raises(InvalidEmailError):
            SignUpUseCase(auth).execute("new@", "secret1")

    def test_repository_enforces_rules_directly(self):
        auth, cognito = _create_auth()
        with pytest.raises(WeakPasswordError):
            auth.sign_up("new@example.com", "12345")
        with pytest.raises(InvalidEmailError):
            auth.sign_up("new@", "secret1")
        cognito.sign_up.assert_not_called()

    def test_email_trimmed_before_sign_up(self):
        auth, cognito = _create_auth()
        SignUpUseCase(auth).execute("  new@example.com ", "secret1")
        assert cognito.sign_up.call_args.kwargs["Username"] == "new@example.com"

    def test_email_in_use(self):
        auth, cognito = _create_auth()
        cognito.sign_up.side_effect = _cognito_error("UsernameExistsException")
        with pytest.raises(EmailAlreadyInUseError):
            auth.sign_up("new@example.com", "secret1")


class TestSignOut:
    def test_sign_out(self):
        auth, cognito = _create_auth()
        auth.sign_in("nurse@example.com", "secret1")
        SignOutUseCase(auth).execute()
        cognito.global_sign_out.assert_called_once_with(AccessToken="token-1")
        assert GetUserUseCase(auth).execute() is None
        with pytest.raises(NotAuthenticatedError):
            auth.require_user()

    def test_sign_out_without_session(self):
        auth, cognito = _create_auth()
        auth.sign_out()
        cognito.global_sign_out.assert_not_called()


class TestErrorMapping:
    def test_network(self):
        error = EndpointConnectionError(endpoint_url="https://cognito-idp.us-west-2.amazonaws.com")
        assert isinstance(map_auth_error(error), NetworkError)

    def test_unknown_code(self):
        mapped = map_auth_error(_cognito_error("TooManyRequestsException"))
        assert isinstance(mapped, UnknownAuthError)

    def test_auth_error_passthrough(self):
        error = WeakPasswordError()
        assert map_auth_error(error) is error
