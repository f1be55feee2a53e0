"""DynamoDB table creation / deletion.

5 tables: medicines, aisles, history, users, validation_errors
(names prefixed with MEDISTOCK_TABLE_PREFIX).

    python -m medistock.infrastructure.dynamodb_setup            # create
    python -m medistock.infrastructure.dynamodb_setup --delete   # delete
"""

import sys
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from medistock.config import Settings
from medistock.repositories.dynamodb import (
    AISLE_INDEX,
    BOTO_CONFIG,
    MEDICINE_TIME_INDEX,
    USER_INDEX,
    USER_TIME_INDEX,
)


def _user_name_index() -> dict:
    return {
        "IndexName": USER_INDEX,
        "KeySchema": [
            {"AttributeName": "userId", "KeyType": "HASH"},
            {"AttributeName": "name", "KeyType": "RANGE"},
        ],
        "Projection": {"ProjectionType": "ALL"},
    }


TABLE_DEFINITIONS = [
    {
        "TableName": "medicines",
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "userId", "AttributeType": "S"},
            {"AttributeName": "name", "AttributeType": "S"},
            {"AttributeName": "aisleId", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            _user_name_index(),
            {
                "IndexName": AISLE_INDEX,
                "KeySchema": [
                    {"AttributeName": "aisleId", "KeyType": "HASH"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "StreamSpecification": {"StreamEnabled": True, "StreamViewType": "NEW_IMAGE"},
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": "aisles",
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "userId", "AttributeType": "S"},
            {"AttributeName": "name", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [_user_name_index()],
        "StreamSpecification": {"StreamEnabled": True, "StreamViewType": "NEW_IMAGE"},
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": "history",
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "userId", "AttributeType": "S"},
            {"AttributeName": "medicineId", "AttributeType": "S"},
            {"AttributeName": "timestamp", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": USER_TIME_INDEX,
                "KeySchema": [
                    {"AttributeName": "userId", "KeyType": "HASH"},
                    {"AttributeName": "timestamp", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
            {
                "IndexName": MEDICINE_TIME_INDEX,
                "KeySchema": [
                    {"AttributeName": "medicineId", "KeyType": "HASH"},
                    {"AttributeName": "timestamp", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": "users",
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": "validation_errors",
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
]


def table_definitions(settings: Settings) -> list[dict]:
    """TABLE_DEFINITIONS with the configured table names."""
    return [
        dict(table_def, TableName=settings.table_name(table_def["TableName"]))
        for table_def in TABLE_DEFINITIONS
    ]


def _client(settings: Settings, dynamodb_client: Optional[Any]) -> Any:
    return dynamodb_client or boto3.client("dynamodb", region_name=settings.region, config=BOTO_CONFIG)


def create_tables(settings: Optional[Settings] = None, dynamodb_client: Optional[Any] = None) -> list[str]:
    """Creates the missing tables. Returns the names of the tables it created."""
    settings = settings or Settings.from_env()
    dynamodb = _client(settings, dynamodb_client)
    created = []

    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.describe_table(TableName=table_name)
            print(f"  ⏭️  {table_name} already exists, skipping")
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                print(f"  🔨 creating {table_name}...")
                dynamodb.create_table(**table_def)
                waiter = dynamodb.get_waiter("table_exists")
                waiter.wait(TableName=table_name)
                created.append(table_name)
                print(f"  ✓  {table_name} created")
            else:
                raise
    return created


def delete_tables(settings: Optional[Settings] = None, dynamodb_client: Optional[Any] = None) -> None:
    """Deletes every table (use with care)."""
    settings = settings or Settings.from_env()
    dynamodb = _client(settings, dynamodb_client)
    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.delete_table(TableName=table_name)
            print(f"  🗑️  {table_name} deleted")
        except ClientError:
            print(f"  ⏭️  {table_name} not found, skipping")


def main(argv: Optional[list[str]] = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] == "--delete":
        print("🗑️  Deleting tables...")
        delete_tables()
    else:
        print("🏗️  Creating DynamoDB tables...\n")
        create_tables()


if __name__ == "__main__":
    main()
