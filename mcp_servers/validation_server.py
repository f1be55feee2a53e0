"""
MediStock Validation MCP Server

Exposes the server-side validation callables (aisle / medicine pre-checks)
and the stock alert scan as MCP tools. The caller's user id is passed as the
``uid`` argument; an empty uid is treated as an unauthenticated call.

Run:
    python -m mcp_servers.validation_server
"""

import json
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from medistock.config import Settings, configure_logging
from medistock.container import build_repository_factory
from medistock.functions.validators import CallableContext, HttpsError, ValidationFunctions
from medistock.repositories.base import RepositoryFactory
from medistock.services.alerts import StockAlertService

logger = logging.getLogger("validation_server")

app = Server("medistock-validation")

_repositories: Optional[RepositoryFactory] = None


def get_repositories() -> RepositoryFactory:
    global _repositories
    if _repositories is None:
        _repositories = build_repository_factory(Settings.from_env())
    return _repositories


def set_repositories(repositories: Optional[RepositoryFactory]) -> None:
    global _repositories
    _repositories = repositories


def _to_json(obj):
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _to_json(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_json(i) for i in obj]
    return obj


def _result(data):
    return [TextContent(type="text", text=json.dumps(_to_json(data), indent=2, ensure_ascii=False, default=str))]


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="validate_aisle", description="Check an aisle before creating it (name, uniqueness, colour, icon)",
             inputSchema={"type": "object", "properties": {
                 "uid": {"type": "string"}, "name": {"type": "string"},
                 "colorHex": {"type": "string"}, "icon": {"type": "string"}},
                 "required": ["uid", "name", "colorHex", "icon"]}),
        Tool(name="validate_medicine", description="Check a medicine before creating it (name, quantity, thresholds, aisle)",
             inputSchema={"type": "object", "properties": {
                 "uid": {"type": "string"}, "name": {"type": "string"},
                 "currentQuantity": {"type": "number"}, "criticalThreshold": {"type": "number"},
                 "warningThreshold": {"type": "number"}, "aisleId": {"type": "string"}},
                 "required": ["uid", "name", "currentQuantity", "criticalThreshold", "warningThreshold", "aisleId"]}),
        Tool(name="list_stock_alerts", description="List critical-stock and expiry alerts for a user",
             inputSchema={"type": "object", "properties": {"uid": {"type": "string"}}, "required": ["uid"]}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "validate_aisle": lambda a: validate_aisle(a.get("uid", ""), a),
        "validate_medicine": lambda a: validate_medicine(a.get("uid", ""), a),
        "list_stock_alerts": lambda a: list_stock_alerts(a["uid"]),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments))


# --- Implementation ---

def validate_aisle(uid: str, data: Dict) -> Dict:
    functions = ValidationFunctions(get_repositories())
    try:
        return {"success": True, **functions.validate_aisle(data, CallableContext(uid=uid))}
    except HttpsError as e:
        return {"success": False, **e.to_response()}


def validate_medicine(uid: str, data: Dict) -> Dict:
    functions = ValidationFunctions(get_repositories())
    try:
        return {"success": True, **functions.validate_medicine(data, CallableContext(uid=uid))}
    except HttpsError as e:
        return {"success": False, **e.to_response()}


def list_stock_alerts(uid: str) -> Dict:
    alerts = StockAlertService(get_repositories().medicines(uid)).check()
    return {
        "success": True,
        "count": len(alerts),
        "data": [
            {
                "medicineId": a.medicine_id,
                "medicineName": a.medicine_name,
                "kind": a.kind,
                "message": a.message,
                "currentQuantity": a.current_quantity,
                "threshold": a.threshold,
                "expiryDate": a.expiry_date.isoformat() if a.expiry_date else None,
            }
            for a in alerts
        ],
    }


def main() -> None:
    import asyncio
    from mcp.server.stdio import stdio_server

    configure_logging(Settings.from_env().log_level)

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main()
