"""Query builder: turns a validated tool call into an OData request."""

from dataclasses import dataclass
from typing import Any, Mapping, Tuple
from urllib.parse import quote

from ..errors import InvalidArgument
from .catalog import ToolDefinition

DEFAULT_TOP = 100
RESPONSE_FORMAT = "json"

# Emission order of the OData system query options
PARAMETER_ORDER = ("$format", "$top", "$skip", "$filter", "$orderby")

# Single quotes are kept literal in option values, as in OData string literals
SAFE_CHARACTERS = "'"


@dataclass(frozen=True)
class QueryDescriptor:
    """A fully bound request against one OData resource."""

    resource: str
    selector_alias: str
    selector_value: str
    parameters: Tuple[Tuple[str, str], ...]

    @property
    def path(self) -> str:
        alias = self.selector_alias
        return f"{self.resource}({alias}=@{alias})?@{alias}='{self.selector_value}'"

    @property
    def query_string(self) -> str:
        return "&".join(f"{name}={quote(value, safe=SAFE_CHARACTERS)}" for name, value in self.parameters)

    def url(self, base_url: str) -> str:
        """Absolute URL under ``base_url``. The path already holds a query part."""
        url = f"{base_url.rstrip('/')}/{self.path}"
        if self.parameters:
            url = f"{url}&{self.query_string}"
        return url


def _is_supplied(value: Any) -> bool:
    return value is not None and value != ""


def build_query(definition: ToolDefinition, arguments: Mapping[str, Any]) -> QueryDescriptor:
    """
    Build the QueryDescriptor for a validated call.

    Args:
        definition: Tool being invoked
        arguments: Arguments already validated against the definition

    Returns:
        QueryDescriptor with $format=json, $top defaulting to 100, and every
        other option present only when the caller supplied it

    Raises:
        InvalidArgument: If the selector value cannot be embedded in a quoted literal
    """
    selector_value = str(arguments[definition.selector])
    if "'" in selector_value:
        raise InvalidArgument(
            definition.selector,
            InvalidArgument.INVALID_VALUE,
            "value must not contain a single quote",
        )

    values = {"$format": RESPONSE_FORMAT, "$top": str(DEFAULT_TOP)}
    for spec in definition.arguments:
        if spec.query_parameter is None:
            continue
        value = arguments.get(spec.name)
        if not _is_supplied(value):
            continue
        if spec.type == "integer":
            value = int(value)
        values[spec.query_parameter] = str(value)

    parameters = tuple((name, values[name]) for name in PARAMETER_ORDER if name in values)
    return QueryDescriptor(
        resource=definition.resource,
        selector_alias=definition.selector_alias,
        selector_value=selector_value,
        parameters=parameters,
    )
