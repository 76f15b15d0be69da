"""Tool catalog and registry tests."""

import pytest

from bcb_mcp.errors import UnknownTool
from bcb_mcp.tools.catalog import CATALOG, ToolDefinition, ToolRegistry


class TestRegistry:

    def test_catalog_has_nine_tools_in_order(self, registry):
        names = registry.names()
        assert len(names) == 9
        assert names[0] == "consultar_meios_pagamento_mensal"
        assert names == [definition.name for definition in CATALOG]

    def test_list_is_stable(self, registry):
        assert [d.name for d in registry.list_tools()] == [d.name for d in registry.list_tools()]

    def test_lookup_known_tool(self, registry):
        definition = registry.lookup("consultar_taxas_intercambio")
        assert definition.resource == "TaxasIntercambioDA"
        assert definition.selector == "trimestre"

    def test_lookup_unknown_tool(self, registry):
        with pytest.raises(UnknownTool) as exc_info:
            registry.lookup("consultar_inexistente")
        assert exc_info.value.tool_name == "consultar_inexistente"

    def test_duplicate_names_rejected(self):
        definition = CATALOG[0]
        with pytest.raises(ValueError):
            ToolRegistry([definition, definition])

    def test_contains_and_len(self, registry):
        assert "consultar_terminais_atm" in registry
        assert "nope" not in registry
        assert len(registry) == 9


class TestDefinitions:

    @pytest.mark.parametrize("definition", CATALOG, ids=lambda d: d.name)
    def test_exactly_one_required_selector(self, definition: ToolDefinition):
        assert definition.required_arguments == [definition.selector]
        assert definition.argument(definition.selector).query_parameter is None

    @pytest.mark.parametrize("definition", CATALOG, ids=lambda d: d.name)
    def test_optional_arguments_map_to_odata_options(self, definition: ToolDefinition):
        for spec in definition.arguments:
            if spec.name != definition.selector:
                assert spec.query_parameter in ("$top", "$skip", "$filter", "$orderby")

    def test_input_schema_shape(self, registry):
        schema = registry.lookup("consultar_transacoes_cartoes").input_schema()
        assert schema["type"] == "object"
        assert schema["required"] == ["trimestre"]
        assert set(schema["properties"]) == {"trimestre", "top", "ordenar_por", "filtro"}
        assert schema["properties"]["top"]["type"] == "integer"

    def test_monthly_tool_uses_anomes_alias(self, registry):
        definition = registry.lookup("consultar_meios_pagamento_mensal")
        assert definition.selector == "ano_mes"
        assert definition.selector_alias == "AnoMes"
        assert {s.name for s in definition.arguments} == {"ano_mes", "top", "skip", "filtro"}
