"""Settings and DynamoDB table setup tests."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from medistock.config import BACKEND_DYNAMODB, BACKEND_MEMORY, Settings
from medistock.container import build_repository_factory
from medistock.infrastructure.dynamodb_setup import (
    TABLE_DEFINITIONS,
    create_tables,
    delete_tables,
    table_definitions,
)
from medistock.repositories.dynamodb import DynamoDBRepositoryFactory
from medistock.repositories.memory import InMemoryRepositoryFactory


def _not_found() -> ClientError:
    return ClientError(
        {"Error": {"Code": "ResourceNotFoundException", "Message": "missing"}}, "DescribeTable"
    )


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("AWS_DEFAULT_REGION", "MEDISTOCK_TABLE_PREFIX", "MEDISTOCK_BACKEND"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.region == "us-west-2"
        assert settings.backend == BACKEND_DYNAMODB
        assert settings.table_name("medicines") == "medicines"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-3")
        monkeypatch.setenv("MEDISTOCK_TABLE_PREFIX", "staging_")
        monkeypatch.setenv("MEDISTOCK_BACKEND", "MEMORY")
        monkeypatch.setenv("MEDISTOCK_CACHE_TTL_HOURS", "6")
        monkeypatch.setenv("MEDISTOCK_LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.region == "eu-west-3"
        assert settings.table_name("aisles") == "staging_aisles"
        assert settings.backend == BACKEND_MEMORY
        assert settings.cache_ttl_hours == 6.0
        assert settings.log_level == "DEBUG"

    def test_backend_selection(self):
        assert isinstance(
            build_repository_factory(Settings(backend=BACKEND_MEMORY)), InMemoryRepositoryFactory
        )
        factory = build_repository_factory(Settings(), dynamodb_resource=MagicMock())
        assert isinstance(factory, DynamoDBRepositoryFactory)


class TestTableSetup:
    def test_definitions_prefixed(self):
        names = [t["TableName"] for t in table_definitions(Settings(table_prefix="dev_"))]
        assert names == [
            "dev_medicines", "dev_aisles", "dev_history", "dev_users", "dev_validation_errors",
        ]
        assert TABLE_DEFINITIONS[0]["TableName"] == "medicines"

    def test_create_missing_tables(self):
        def describe_table(TableName):
            if TableName != "users":
                raise _not_found()
            return {"Table": {"TableName": TableName}}

        client = MagicMock()
        client.describe_table.side_effect = describe_table
        created = create_tables(Settings(), dynamodb_client=client)
        assert "users" not in created
        assert len(created) == 4
        assert client.create_table.call_count == 4
        client.get_waiter.assert_called_with("table_exists")

    def test_create_propagates_other_errors(self):
        client = MagicMock()
        client.describe_table.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "DescribeTable"
        )
        with pytest.raises(ClientError) as exc:
            create_tables(Settings(), dynamodb_client=client)
        assert exc.value.response["Error"]["Code"] == "AccessDeniedException"
        client.create_table.assert_not_called()

    def test_delete_tables(self):
        client = MagicMock()
        client.delete_table.side_effect = [None, _not_found(), None, None, None]
        delete_tables(Settings(table_prefix="dev_"), dynamodb_client=client)
        assert client.delete_table.call_count == 5
        client.delete_table.assert_any_call(TableName="dev_history")
