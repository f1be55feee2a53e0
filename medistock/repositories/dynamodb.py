"""DynamoDB-backed repositories.

Tables (see medistock.infrastructure.dynamodb_setup):
- medicines: PK id, GSI UserIndex (userId, name), GSI AisleIndex (aisleId)
- aisles: PK id, GSI UserIndex (userId, name)
- history: PK id, GSI UserTimeIndex (userId, timestamp),
  GSI MedicineTimeIndex (medicineId, timestamp)
- users, validation_errors: PK id
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.config import Config
from botocore.exceptions import ClientError

from medistock.config import Settings
from medistock.models.documents import (
    aisle_from_document,
    aisle_to_document,
    convert_floats,
    format_timestamp,
    history_from_document,
    history_to_document,
    medicine_from_document,
    medicine_to_document,
    user_from_document,
    user_to_document,
)
from medistock.models.errors import (
    MedicineDeleteError,
    MedicineSaveError,
    RepositoryError,
    UnknownMedicineError,
)
from medistock.models.inventory import Aisle, HistoryEntry, Medicine, User, utcnow
from medistock.repositories.base import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_PAGE_SIZE,
    AisleRepository,
    HistoryRepository,
    MedicineRepository,
    RepositoryFactory,
    UserRepository,
    ValidationErrorLog,
)
from medistock.repositories.memory import new_document_id
from medistock.subscriptions import ChangeFeed

logger = logging.getLogger(__name__)

BOTO_CONFIG = Config(retries={"max_attempts": 3})

USER_INDEX = "UserIndex"
AISLE_INDEX = "AisleIndex"
USER_TIME_INDEX = "UserTimeIndex"
MEDICINE_TIME_INDEX = "MedicineTimeIndex"


def create_dynamodb_resource(region_name: str) -> Any:
    return boto3.resource("dynamodb", region_name=region_name, config=BOTO_CONFIG)


class DynamoDBTableMixin:
    """Table handle plus the paging helpers shared by every DynamoDB repository."""

    def _bind_table(self, table_name: str, dynamodb_resource: Optional[Any], region_name: str) -> None:
        self.dynamodb = dynamodb_resource or create_dynamodb_resource(region_name)
        self.table_name = table_name
        self.table = self.dynamodb.Table(table_name)

    def _query_all(self, max_items: Optional[int] = None, **params) -> list[dict]:
        resp = self.table.query(**params)
        items = list(resp.get("Items", []))
        while "LastEvaluatedKey" in resp and (max_items is None or len(items) < max_items):
            resp = self.table.query(ExclusiveStartKey=resp["LastEvaluatedKey"], **params)
            items.extend(resp.get("Items", []))
        return items if max_items is None else items[:max_items]

    def _count(self, **params) -> int:
        resp = self.table.query(Select="COUNT", **params)
        total = resp.get("Count", 0)
        while "LastEvaluatedKey" in resp:
            resp = self.table.query(
                Select="COUNT", ExclusiveStartKey=resp["LastEvaluatedKey"], **params
            )
            total += resp.get("Count", 0)
        return total


class _PageCursor:
    def __init__(self) -> None:
        self.last_key: Optional[dict] = None
        self.has_more = True

    def reset(self) -> None:
        self.last_key = None
        self.has_more = True

    def advance(self, resp: dict) -> None:
        self.last_key = resp.get("LastEvaluatedKey")
        self.has_more = self.last_key is not None


class DynamoDBMedicineRepository(DynamoDBTableMixin, MedicineRepository):
    def __init__(
        self,
        user_id: str,
        table_name: str = "medicines",
        dynamodb_resource: Optional[Any] = None,
        region_name: str = "us-west-2",
        feed: Optional[ChangeFeed] = None,
    ):
        super().__init__(user_id, feed)
        self._bind_table(table_name, dynamodb_resource, region_name)
        self._cursor = _PageCursor()

    def _by_user(self) -> dict:
        return {"IndexName": USER_INDEX, "KeyConditionExpression": Key("userId").eq(self.user_id)}

    def list_medicines(self) -> list[Medicine]:
        try:
            items = self._query_all(**self._by_user())
        except ClientError as e:
            logger.error("Medicine list failed for %s: %s", self.user_id, e)
            raise UnknownMedicineError(e) from e
        return [medicine_from_document(item) for item in items]

    def list_medicines_page(self, limit: int = DEFAULT_PAGE_SIZE, refresh: bool = False) -> list[Medicine]:
        if refresh:
            self._cursor.reset()
        if not self._cursor.has_more:
            return []
        params = dict(self._by_user(), Limit=limit)
        if self._cursor.last_key:
            params["ExclusiveStartKey"] = self._cursor.last_key
        try:
            resp = self.table.query(**params)
        except ClientError as e:
            logger.error("Medicine page failed for %s: %s", self.user_id, e)
            raise UnknownMedicineError(e) from e
        self._cursor.advance(resp)
        return [medicine_from_document(item) for item in resp.get("Items", [])]

    @property
    def has_more_medicines(self) -> bool:
        return self._cursor.has_more

    def get_medicine(self, medicine_id: str) -> Optional[Medicine]:
        if not medicine_id:
            return None
        try:
            resp = self.table.get_item(Key={"id": medicine_id})
        except ClientError as e:
            logger.error("Medicine fetch failed [%s]: %s", medicine_id, e)
            raise UnknownMedicineError(e) from e
        item = resp.get("Item")
        if not item or item.get("userId") != self.user_id:
            return None
        return medicine_from_document(item)

    def save_medicine(self, medicine: Medicine) -> Medicine:
        now = utcnow()
        if medicine.id:
            stored = medicine.copy_with(updated_at=now)
        else:
            stored = medicine.copy_with(id=new_document_id(), created_at=now, updated_at=now)
        try:
            self.table.put_item(Item=convert_floats(medicine_to_document(stored, self.user_id)))
        except ClientError as e:
            logger.error("Medicine save failed [%s]: %s", stored.id, e)
            raise MedicineSaveError() from e
        logger.info("Medicine saved: %s (%s)", stored.name, stored.id)
        self._publish()
        return stored

    def delete_medicine(self, medicine_id: str) -> None:
        try:
            self.table.delete_item(Key={"id": medicine_id})
        except ClientError as e:
            logger.error("Medicine delete failed [%s]: %s", medicine_id, e)
            raise MedicineDeleteError() from e
        logger.info("Medicine deleted: %s", medicine_id)
        self._publish()

    def count_medicines(self) -> int:
        try:
            return self._count(**self._by_user())
        except ClientError as e:
            logger.error("Medicine count failed for %s: %s", self.user_id, e)
            raise UnknownMedicineError(e) from e

    def count_by_aisle(self, aisle_id: str) -> int:
        if not aisle_id:
            return 0
        try:
            return self._count(
                IndexName=AISLE_INDEX,
                KeyConditionExpression=Key("aisleId").eq(aisle_id),
                FilterExpression=Attr("userId").eq(self.user_id),
            )
        except ClientError as e:
            logger.error("Medicine count for aisle %s failed: %s", aisle_id, e)
            raise UnknownMedicineError(e) from e


class DynamoDBAisleRepository(DynamoDBTableMixin, AisleRepository):
    def __init__(
        self,
        user_id: str,
        table_name: str = "aisles",
        dynamodb_resource: Optional[Any] = None,
        region_name: str = "us-west-2",
        feed: Optional[ChangeFeed] = None,
    ):
        super().__init__(user_id, feed)
        self._bind_table(table_name, dynamodb_resource, region_name)
        self._cursor = _PageCursor()

    def _by_user(self) -> dict:
        return {"IndexName": USER_INDEX, "KeyConditionExpression": Key("userId").eq(self.user_id)}

    def list_aisles(self) -> list[Aisle]:
        try:
            items = self._query_all(**self._by_user())
        except ClientError as e:
            logger.error("Aisle list failed for %s: %s", self.user_id, e)
            raise RepositoryError(cause=e) from e
        return [aisle_from_document(item) for item in items]

    def list_aisles_page(self, limit: int = DEFAULT_PAGE_SIZE, refresh: bool = False) -> list[Aisle]:
        if refresh:
            self._cursor.reset()
        if not self._cursor.has_more:
            return []
        params = dict(self._by_user(), Limit=limit)
        if self._cursor.last_key:
            params["ExclusiveStartKey"] = self._cursor.last_key
        try:
            resp = self.table.query(**params)
        except ClientError as e:
            logger.error("Aisle page failed for %s: %s", self.user_id, e)
            raise RepositoryError(cause=e) from e
        self._cursor.advance(resp)
        return [aisle_from_document(item) for item in resp.get("Items", [])]

    @property
    def has_more_aisles(self) -> bool:
        return self._cursor.has_more

    def get_aisle(self, aisle_id: str) -> Optional[Aisle]:
        if not aisle_id:
            return None
        try:
            resp = self.table.get_item(Key={"id": aisle_id})
        except ClientError as e:
            logger.error("Aisle fetch failed [%s]: %s", aisle_id, e)
            raise RepositoryError(cause=e) from e
        item = resp.get("Item")
        if not item or item.get("userId") != self.user_id:
            return None
        return aisle_from_document(item)

    def save_aisle(self, aisle: Aisle) -> Aisle:
        now = utcnow()
        if aisle.id:
            stored = aisle.copy_with(updated_at=now)
        else:
            stored = aisle.copy_with(id=new_document_id(), created_at=now, updated_at=now)
        try:
            self.table.put_item(Item=convert_floats(aisle_to_document(stored, self.user_id)))
        except ClientError as e:
            logger.error("Aisle save failed [%s]: %s", stored.id, e)
            raise RepositoryError("Échec de l'enregistrement du rayon.", cause=e) from e
        logger.info("Aisle saved: %s (%s)", stored.name, stored.id)
        self._publish()
        return stored

    def delete_aisle(self, aisle_id: str) -> None:
        try:
            self.table.delete_item(Key={"id": aisle_id})
        except ClientError as e:
            logger.error("Aisle delete failed [%s]: %s", aisle_id, e)
            raise RepositoryError("Échec de la suppression du rayon.", cause=e) from e
        logger.info("Aisle deleted: %s", aisle_id)
        self._publish()

    def count_aisles(self) -> int:
        try:
            return self._count(**self._by_user())
        except ClientError as e:
            logger.error("Aisle count failed for %s: %s", self.user_id, e)
            raise RepositoryError(cause=e) from e


class DynamoDBHistoryRepository(DynamoDBTableMixin, HistoryRepository):
    def __init__(
        self,
        user_id: str,
        table_name: str = "history",
        dynamodb_resource: Optional[Any] = None,
        region_name: str = "us-west-2",
        feed: Optional[ChangeFeed] = None,
    ):
        super().__init__(user_id, feed)
        self._bind_table(table_name, dynamodb_resource, region_name)

    def add_entry(self, entry: HistoryEntry) -> HistoryEntry:
        if not entry.id:
            entry = HistoryEntry(
                id=new_document_id(),
                medicine_id=entry.medicine_id,
                user_id=entry.user_id,
                action=entry.action,
                details=entry.details,
                timestamp=entry.timestamp,
                metadata=entry.metadata,
            )
        try:
            self.table.put_item(Item=history_to_document(entry))
        except ClientError as e:
            logger.error("History write failed [%s]: %s", entry.action, e)
            raise RepositoryError("Échec de l'enregistrement de l'historique.", cause=e) from e
        self._publish()
        return entry

    def list_history(
        self,
        medicine_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[HistoryEntry]:
        if medicine_id:
            condition = Key("medicineId").eq(medicine_id)
            params = {
                "IndexName": MEDICINE_TIME_INDEX,
                "FilterExpression": Attr("userId").eq(self.user_id),
            }
        else:
            condition = Key("userId").eq(self.user_id)
            params = {"IndexName": USER_TIME_INDEX}

        if start is not None and end is not None:
            condition = condition & Key("timestamp").between(
                format_timestamp(start), format_timestamp(end)
            )
        elif start is not None:
            condition = condition & Key("timestamp").gte(format_timestamp(start))
        elif end is not None:
            condition = condition & Key("timestamp").lte(format_timestamp(end))

        try:
            items = self._query_all(
                max_items=limit,
                KeyConditionExpression=condition,
                ScanIndexForward=False,
                **params,
            )
        except ClientError as e:
            logger.error("History query failed for %s: %s", self.user_id, e)
            raise RepositoryError(cause=e) from e
        return [history_from_document(item) for item in items]

    def delete_older_than(self, cutoff: datetime) -> int:
        try:
            items = self._query_all(
                IndexName=USER_TIME_INDEX,
                KeyConditionExpression=Key("userId").eq(self.user_id)
                & Key("timestamp").lt(format_timestamp(cutoff)),
            )
            with self.table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"id": item["id"]})
        except ClientError as e:
            logger.error("History purge failed for %s: %s", self.user_id, e)
            raise RepositoryError(cause=e) from e
        if items:
            logger.info("Purged %d history entries older than %s", len(items), cutoff)
            self._publish()
        return len(items)


class DynamoDBUserRepository(DynamoDBTableMixin, UserRepository):
    def __init__(
        self,
        table_name: str = "users",
        dynamodb_resource: Optional[Any] = None,
        region_name: str = "us-west-2",
    ):
        self._bind_table(table_name, dynamodb_resource, region_name)

    def get_user(self, user_id: str) -> Optional[User]:
        try:
            resp = self.table.get_item(Key={"id": user_id})
        except ClientError as e:
            logger.error("User fetch failed [%s]: %s", user_id, e)
            raise RepositoryError(cause=e) from e
        item = resp.get("Item")
        return user_from_document(item) if item else None

    def save_user(self, user: User) -> User:
        try:
            self.table.put_item(Item=user_to_document(user))
        except ClientError as e:
            logger.error("User save failed [%s]: %s", user.id, e)
            raise RepositoryError(cause=e) from e
        return user


class DynamoDBValidationErrorLog(DynamoDBTableMixin, ValidationErrorLog):
    def __init__(
        self,
        table_name: str = "validation_errors",
        dynamodb_resource: Optional[Any] = None,
        region_name: str = "us-west-2",
    ):
        self._bind_table(table_name, dynamodb_resource, region_name)

    def record(self, item_type: str, document_id: str, message: str) -> None:
        logger.warning("Rejected %s %s: %s", item_type, document_id, message)
        try:
            self.table.put_item(Item={
                "id": new_document_id(),
                "type": item_type,
                "documentId": document_id,
                "errorMessage": message,
                "timestamp": format_timestamp(utcnow()),
            })
        except ClientError as e:
            logger.warning("Validation error log failed [%s]: %s", document_id, e)


class DynamoDBRepositoryFactory(RepositoryFactory):
    """Shares one boto3 resource and one ChangeFeed across the repositories it builds."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        dynamodb_resource: Optional[Any] = None,
        feed: Optional[ChangeFeed] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.dynamodb = dynamodb_resource or create_dynamodb_resource(self.settings.region)
        self.feed = feed or ChangeFeed()

    def medicines(self, user_id: str) -> DynamoDBMedicineRepository:
        return DynamoDBMedicineRepository(
            user_id,
            table_name=self.settings.table_name("medicines"),
            dynamodb_resource=self.dynamodb,
            feed=self.feed,
        )

    def aisles(self, user_id: str) -> DynamoDBAisleRepository:
        return DynamoDBAisleRepository(
            user_id,
            table_name=self.settings.table_name("aisles"),
            dynamodb_resource=self.dynamodb,
            feed=self.feed,
        )

    def history(self, user_id: str) -> DynamoDBHistoryRepository:
        return DynamoDBHistoryRepository(
            user_id,
            table_name=self.settings.table_name("history"),
            dynamodb_resource=self.dynamodb,
            feed=self.feed,
        )

    def users(self) -> DynamoDBUserRepository:
        return DynamoDBUserRepository(
            table_name=self.settings.table_name("users"), dynamodb_resource=self.dynamodb
        )

    def validation_errors(self) -> DynamoDBValidationErrorLog:
        return DynamoDBValidationErrorLog(
            table_name=self.settings.table_name("validation_errors"),
            dynamodb_resource=self.dynamodb,
        )
