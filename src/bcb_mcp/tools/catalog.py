"""Tool catalog: the static set of query tools exposed over MCP.

Each entry is data. The dispatcher validates arguments against it and the
query builder turns a validated call into an OData request.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import UnknownTool


@dataclass(frozen=True)
class ArgumentSpec:
    """One declared tool argument."""

    name: str
    type: str  # JSON schema type: "string" or "integer"
    description: str
    required: bool = False
    query_parameter: Optional[str] = None  # "$top", "$skip", ... (None for the selector)
    pattern: Optional[str] = None
    minimum: Optional[int] = None

    def schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.pattern:
            schema["pattern"] = self.pattern
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        return schema


@dataclass(frozen=True)
class ToolDefinition:
    """A tool bound to one remote OData resource."""

    name: str
    description: str
    resource: str
    selector: str  # argument carrying the period key
    selector_alias: str  # OData parameter alias in the resource path
    arguments: Tuple[ArgumentSpec, ...] = field(default_factory=tuple)

    def argument(self, name: str) -> Optional[ArgumentSpec]:
        for spec in self.arguments:
            if spec.name == name:
                return spec
        return None

    @property
    def required_arguments(self) -> List[str]:
        return [spec.name for spec in self.arguments if spec.required]

    def input_schema(self) -> Dict[str, Any]:
        """JSON schema advertised in tools/list."""
        return {
            "type": "object",
            "properties": {spec.name: spec.schema() for spec in self.arguments},
            "required": self.required_arguments,
        }


class ToolRegistry:
    """Read-only mapping of tool name to definition, in catalog order."""

    def __init__(self, definitions: Iterable[ToolDefinition]):
        self._definitions: Dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in self._definitions:
                raise ValueError(f"Duplicate tool name in catalog: {definition.name}")
            self._definitions[definition.name] = definition

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._definitions.values())

    def names(self) -> List[str]:
        return list(self._definitions)

    def lookup(self, name: str) -> ToolDefinition:
        try:
            return self._definitions[name]
        except (KeyError, TypeError):
            raise UnknownTool(str(name)) from None

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


# Period keys
YEAR_MONTH_PATTERN = r"^\d{4}(0[1-9]|1[0-2])$"
YEAR_QUARTER_PATTERN = r"^\d{4}[1-4]$"


def _ano_mes() -> ArgumentSpec:
    return ArgumentSpec(
        name="ano_mes",
        type="string",
        description="Ano e mês no formato YYYYMM (exemplo: '202312')",
        required=True,
        pattern=YEAR_MONTH_PATTERN,
    )


def _trimestre(description: str = "Ano e trimestre no formato YYYYQ (exemplo: '20234')") -> ArgumentSpec:
    return ArgumentSpec(
        name="trimestre",
        type="string",
        description=description,
        required=True,
        pattern=YEAR_QUARTER_PATTERN,
    )


def _top() -> ArgumentSpec:
    return ArgumentSpec(
        name="top",
        type="integer",
        description="Número máximo de registros a retornar (padrão: 100)",
        query_parameter="$top",
        minimum=1,
    )


def _skip() -> ArgumentSpec:
    return ArgumentSpec(
        name="skip",
        type="integer",
        description="Número de registros a pular para paginação",
        query_parameter="$skip",
        minimum=0,
    )


def _filtro(description: str = "Filtro OData para refinar a consulta") -> ArgumentSpec:
    return ArgumentSpec(name="filtro", type="string", description=description, query_parameter="$filter")


def _ordenar_por(description: str = "Campo para ordenação") -> ArgumentSpec:
    return ArgumentSpec(name="ordenar_por", type="string", description=description, query_parameter="$orderby")


CATALOG: Tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="consultar_meios_pagamento_mensal",
        description=(
            "Consulta dados mensais sobre meios de pagamento, incluindo operações com boletos bancários, "
            "PIX, TED, DOC e outros. Use o formato YYYYMM para o parâmetro ano_mes "
            "(exemplo: '202312' para dezembro de 2023)."
        ),
        resource="MeiosdePagamentosMensalDA",
        selector="ano_mes",
        selector_alias="AnoMes",
        arguments=(
            _ano_mes(),
            _top(),
            _skip(),
            _filtro("Filtro OData para refinar a consulta (exemplo: \"Modalidade eq 'PIX'\")"),
        ),
    ),
    ToolDefinition(
        name="consultar_meios_pagamento_trimestral",
        description=(
            "Consulta dados trimestrais sobre operações com cartões de pagamento e transferências de crédito. "
            "Use o formato YYYYQ para o parâmetro trimestre (exemplo: '20234' para o 4º trimestre de 2023)."
        ),
        resource="MeiosdePagamentosTrimestralDA",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(
            _trimestre("Ano e trimestre no formato YYYYQ (exemplo: '20234' para 4º trimestre de 2023)"),
            _top(),
            _skip(),
            _filtro(),
        ),
    ),
    ToolDefinition(
        name="consultar_transacoes_cartoes",
        description=(
            "Consulta estoque e transações de cartões de pagamento por trimestre. Retorna dados sobre "
            "quantidade e valor das transações realizadas com cartões."
        ),
        resource="Quantidadeetransacoesdecartoes",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(
            _trimestre(),
            _top(),
            _ordenar_por("Campo para ordenação (exemplo: 'Trimestre desc')"),
            _filtro(),
        ),
    ),
    ToolDefinition(
        name="consultar_estabelecimentos_credenciados",
        description=(
            "Consulta quantidade de estabelecimentos credenciados para aceitar meios de pagamento "
            "eletrônico por trimestre."
        ),
        resource="EstabCredTransDA",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(_trimestre(), _top(), _ordenar_por(), _filtro()),
    ),
    ToolDefinition(
        name="consultar_taxas_intercambio",
        description="Consulta taxas de intercâmbio praticadas no mercado de meios de pagamento por trimestre.",
        resource="TaxasIntercambioDA",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(_trimestre(), _top(), _filtro()),
    ),
    ToolDefinition(
        name="consultar_taxas_desconto",
        description=(
            "Consulta taxas de desconto cobradas de estabelecimentos comerciais por operações com "
            "meios de pagamento."
        ),
        resource="TaxasDescontoDA",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(_trimestre(), _top(), _filtro()),
    ),
    ToolDefinition(
        name="consultar_terminais_atm",
        description=(
            "Consulta estatísticas sobre terminais de autoatendimento (ATM/caixas eletrônicos) por trimestre."
        ),
        resource="TerminaisATMDA",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(_trimestre(), _top(), _filtro()),
    ),
    ToolDefinition(
        name="consultar_portadores_cartao",
        description="Consulta informações sobre portadores de cartões de pagamento por trimestre.",
        resource="PortadoresCartaoDA",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(_trimestre(), _top(), _filtro()),
    ),
    ToolDefinition(
        name="consultar_quantidade_cartoes",
        description=(
            "Consulta a quantidade de cartões de pagamento emitidos (crédito, débito e pré-pagos) "
            "por trimestre."
        ),
        resource="Quantidadedecartoes",
        selector="trimestre",
        selector_alias="trimestre",
        arguments=(_trimestre(), _top(), _ordenar_por(), _filtro()),
    ),
)


def default_registry() -> ToolRegistry:
    """Registry over the deployed catalog."""
    return ToolRegistry(CATALOG)
