"""Transport-agnostic tool dispatch: validate, build the query, fetch, normalize."""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from mcp.types import CallToolResult, TextContent

from .errors import InvalidArgument, ToolError
from .tools.catalog import ArgumentSpec, ToolDefinition, ToolRegistry
from .tools.query import QueryDescriptor, build_query

logger = logging.getLogger(__name__)


class QueryFetcher(Protocol):
    async def fetch(self, query: QueryDescriptor) -> Any: ...


@dataclass(frozen=True)
class ToolInvocation:
    """One request to run a named tool."""

    name: str
    arguments: Optional[Mapping[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolFailure:
    kind: str
    message: str
    detail: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one invocation: exactly one of payload or failure is set."""

    tool_name: str
    payload: Optional[str] = None
    failure: Optional[ToolFailure] = None

    def __post_init__(self):
        if (self.payload is None) == (self.failure is None):
            raise ValueError("ToolResult needs exactly one of payload or failure")

    @classmethod
    def success(cls, tool_name: str, data: Any) -> "ToolResult":
        return cls(tool_name=tool_name, payload=json.dumps(data, indent=2, ensure_ascii=False))

    @classmethod
    def failed(
        cls, tool_name: str, kind: str, cause: Any, detail: Optional[Mapping[str, Any]] = None
    ) -> "ToolResult":
        message = f"Error executing {tool_name}: {cause}"
        return cls(tool_name=tool_name, failure=ToolFailure(kind=kind, message=message, detail=dict(detail or {})))

    @property
    def is_error(self) -> bool:
        return self.failure is not None

    @property
    def text(self) -> str:
        return self.failure.message if self.failure else self.payload

    def to_mcp(self) -> Dict[str, Any]:
        """Render as an MCP CallToolResult."""
        result = CallToolResult(
            content=[TextContent(type="text", text=self.text)],
            isError=self.is_error,
        )
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def _check_type(spec: ArgumentSpec, value: Any) -> Any:
    if spec.type == "string":
        if not isinstance(value, str):
            raise InvalidArgument(spec.name, InvalidArgument.WRONG_TYPE, f"expected string, got {type(value).__name__}")
        if spec.pattern and not re.fullmatch(spec.pattern, value):
            raise InvalidArgument(spec.name, InvalidArgument.INVALID_VALUE, f"'{value}' does not match {spec.pattern}")
        return value

    if spec.type == "integer":
        # bool is an int subclass; JSON clients may send 100.0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidArgument(spec.name, InvalidArgument.WRONG_TYPE, f"expected integer, got {type(value).__name__}")
        if isinstance(value, float):
            if not value.is_integer():
                raise InvalidArgument(spec.name, InvalidArgument.WRONG_TYPE, f"expected integer, got {value}")
            value = int(value)
        if spec.minimum is not None and value < spec.minimum:
            raise InvalidArgument(spec.name, InvalidArgument.INVALID_VALUE, f"must be >= {spec.minimum}")
        return value

    raise InvalidArgument(spec.name, InvalidArgument.WRONG_TYPE, f"unsupported schema type {spec.type}")


def _is_supplied(value: Any) -> bool:
    return value is not None and value != ""


def validate_arguments(definition: ToolDefinition, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Validate raw arguments against a tool definition.

    Args:
        definition: Tool being invoked
        arguments: Raw argument mapping from the caller (None means no arguments)

    Returns:
        New dict holding the validated values (optional arguments sent as null or "" are dropped)

    Raises:
        InvalidArgument: On a missing required, undeclared or ill-typed argument
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise InvalidArgument("arguments", InvalidArgument.WRONG_TYPE, "arguments must be an object")

    for spec in definition.arguments:
        if spec.required and not _is_supplied(arguments.get(spec.name)):
            raise InvalidArgument(spec.name, InvalidArgument.MISSING_REQUIRED)

    for name in arguments:
        if definition.argument(name) is None:
            raise InvalidArgument(name, InvalidArgument.UNKNOWN_ARGUMENT, f"not accepted by {definition.name}")

    validated: Dict[str, Any] = {}
    for spec in definition.arguments:
        value = arguments.get(spec.name)
        if _is_supplied(value):
            validated[spec.name] = _check_type(spec, value)
    return validated


class Dispatcher:
    """Runs tool invocations and never lets a failure escape as an exception."""

    def __init__(self, registry: ToolRegistry, client: QueryFetcher):
        self.registry = registry
        self.client = client

    async def invoke(self, invocation: ToolInvocation) -> ToolResult:
        name = invocation.name
        start = time.monotonic()
        try:
            definition = self.registry.lookup(name)
            arguments = validate_arguments(definition, invocation.arguments)
            query = build_query(definition, arguments)
            data = await self.client.fetch(query)
        except ToolError as e:
            logger.warning(f"Tool '{name}' failed ({e.kind}): {e}")
            return ToolResult.failed(name, e.kind, e, e.details)
        except Exception as e:
            logger.error(f"Error executing tool '{name}': {e}", exc_info=True)
            return ToolResult.failed(name, "InternalError", e)

        logger.info("Tool '%s' succeeded in %.0fms", name, (time.monotonic() - start) * 1000)
        return ToolResult.success(name, data)
