from medistock.functions.validators import (
    CallableContext,
    HttpsError,
    TriggerResult,
    ValidationFunctions,
)

__all__ = ["CallableContext", "HttpsError", "TriggerResult", "ValidationFunctions"]
