"""MCP JSON-RPC message handling shared by the SSE and single-shot HTTP transports."""

import logging
from typing import Any, Dict, List, Optional, Union

from mcp import types

from . import __version__
from .dispatcher import Dispatcher, ToolInvocation
from .tools.catalog import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "bcb-meios-pagamento-mcp"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

CAPABILITIES = {"tools": {"listChanged": False}}


def tool_descriptor(definition: ToolDefinition) -> Dict[str, Any]:
    """Render a catalog entry as an MCP Tool."""
    tool = types.Tool(
        name=definition.name,
        description=definition.description,
        inputSchema=definition.input_schema(),
    )
    return tool.model_dump(mode="json", by_alias=True, exclude_none=True)


def _error(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


class McpProtocol:
    """Processes JSON-RPC requests for the tools capability."""

    def __init__(self, registry: ToolRegistry, dispatcher: Dispatcher):
        self.registry = registry
        self.dispatcher = dispatcher

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool_descriptor(definition) for definition in self.registry.list_tools()]

    def initialize_result(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else DEFAULT_PROTOCOL_VERSION
        return {
            "protocolVersion": version,
            "capabilities": CAPABILITIES,
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    async def process(self, body: Any) -> Optional[Union[Dict[str, Any], List[Dict[str, Any]]]]:
        """
        Process a JSON-RPC message or batch.

        Returns:
            - dict response for a single request
            - list of responses for a batch
            - None when there is nothing to answer (notifications only)
        """
        if isinstance(body, list):
            responses = []
            for item in body:
                response = await self.process_one(item)
                if response is not None:
                    responses.append(response)
            return responses or None
        return await self.process_one(body)

    async def process_one(self, body: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(body, dict) or not isinstance(body.get("method"), str):
            request_id = body.get("id") if isinstance(body, dict) else None
            # Replies from the client (e.g. to pings we never send) carry no method
            if isinstance(body, dict) and ("result" in body or "error" in body):
                return None
            return _error(request_id, types.INVALID_REQUEST, "Invalid JSON-RPC request")

        method = body["method"]
        params = body.get("params") or {}
        request_id = body.get("id")
        is_notification = request_id is None

        if method.startswith("notifications/"):
            logger.debug("Received notification: %s", method)
            return None

        if not isinstance(params, dict):
            return None if is_notification else _error(request_id, types.INVALID_PARAMS, "params must be an object")

        try:
            if method == "initialize":
                logger.info("Handling initialize request")
                result = self.initialize_result(params)
            elif method == "ping":
                result = {}
            elif method == "tools/list":
                logger.info("Handling tools/list request")
                result = {"tools": self.list_tools()}
            elif method == "tools/call":
                name = params.get("name")
                if not isinstance(name, str) or not name:
                    if is_notification:
                        return None
                    return _error(request_id, types.INVALID_PARAMS, "tools/call requires params.name")
                logger.info("Handling tools/call request for '%s'", name)
                tool_result = await self.dispatcher.invoke(ToolInvocation(name, params.get("arguments")))
                result = tool_result.to_mcp()
            else:
                if is_notification:
                    return None
                logger.warning("Unknown method: %s", method)
                return _error(request_id, types.METHOD_NOT_FOUND, f"Method not found: {method}")
        except Exception as e:
            logger.error("Error handling %s: %s", method, e, exc_info=True)
            if is_notification:
                return None
            return _error(request_id, types.INTERNAL_ERROR, f"Internal error: {e}")

        if is_notification:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": result}
