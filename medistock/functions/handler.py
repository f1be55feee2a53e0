"""AWS Lambda entrypoint for the validation functions.

Two event shapes are accepted:

- Callable invocation::

    {"function": "validateAisle" | "validateMedicine",
     "data": {...}, "auth": {"uid": "..."}}

- DynamoDB Streams batch from the aisles / medicines tables; every INSERT
  record runs the matching create-trigger.
"""

import logging
from typing import Any, Optional

from boto3.dynamodb.types import TypeDeserializer

from medistock.config import Settings, configure_logging
from medistock.functions.validators import CallableContext, HttpsError, ValidationFunctions
from medistock.repositories.dynamodb import DynamoDBRepositoryFactory

logger = logging.getLogger(__name__)

# Lazily built on the first invocation, reused by warm containers
_functions: Optional[ValidationFunctions] = None
_settings: Optional[Settings] = None

_deserializer = TypeDeserializer()


def get_functions() -> ValidationFunctions:
    global _functions, _settings
    if _functions is None:
        _settings = Settings.from_env()
        configure_logging(_settings.log_level)
        _functions = ValidationFunctions(DynamoDBRepositoryFactory(_settings))
        logger.info("Validation functions ready (prefix: %r)", _settings.table_prefix)
    return _functions


def _table_from_arn(arn: str) -> str:
    # arn:aws:dynamodb:<region>:<account>:table/<name>/stream/<label>
    parts = arn.split(":table/", 1)
    return parts[1].split("/", 1)[0] if len(parts) == 2 else ""


def _unmarshal(image: dict) -> dict:
    return {k: _deserializer.deserialize(v) for k, v in image.items()}


def handle_callable(event: dict, functions: ValidationFunctions) -> dict:
    name = event.get("function")
    context = CallableContext(uid=(event.get("auth") or {}).get("uid"))
    data = event.get("data") or {}
    try:
        if name == "validateAisle":
            return {"result": functions.validate_aisle(data, context)}
        if name == "validateMedicine":
            return {"result": functions.validate_medicine(data, context)}
        raise HttpsError("not-found", f"Fonction inconnue: {name}")
    except HttpsError as e:
        logger.info("%s rejected: %s (%s)", name, e.message, e.code)
        return e.to_response()


def handle_stream(event: dict, functions: ValidationFunctions, settings: Settings) -> dict:
    results = []
    for record in event.get("Records", []):
        if record.get("eventName") != "INSERT":
            continue
        table = _table_from_arn(record.get("eventSourceARN", ""))
        document = _unmarshal(record["dynamodb"]["NewImage"])
        if table == settings.table_name("aisles"):
            result = functions.on_aisle_created(document)
        elif table == settings.table_name("medicines"):
            result = functions.on_medicine_created(document)
        else:
            logger.warning("Stream record from unexpected table %s ignored", table)
            continue
        results.append({"documentId": result.document_id, "valid": result.valid, "error": result.error})
    return {"processed": len(results), "results": results}


def lambda_handler(event: dict, context: Any = None) -> dict:
    functions = get_functions()
    if "Records" in event:
        return handle_stream(event, functions, _settings)
    return handle_callable(event, functions)
