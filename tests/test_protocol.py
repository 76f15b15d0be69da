"""JSON-RPC protocol handling tests."""

import json

import pytest


def _request(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestProtocol:

    @pytest.mark.asyncio
    async def test_initialize_echoes_supported_version(self, protocol):
        response = await protocol.process(_request("initialize", {"protocolVersion": "2025-03-26"}))
        result = response["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"]["name"] == "bcb-meios-pagamento-mcp"
        assert "tools" in result["capabilities"]

    @pytest.mark.asyncio
    async def test_initialize_falls_back_for_unknown_version(self, protocol):
        response = await protocol.process(_request("initialize", {"protocolVersion": "1999-01-01"}))
        assert response["result"]["protocolVersion"] == "2024-11-05"

    @pytest.mark.asyncio
    async def test_ping(self, protocol):
        assert await protocol.process(_request("ping", request_id=7)) == {"jsonrpc": "2.0", "id": 7, "result": {}}

    @pytest.mark.asyncio
    async def test_tools_list(self, protocol):
        response = await protocol.process(_request("tools/list"))
        tools = response["result"]["tools"]
        assert len(tools) == 9
        first = tools[0]
        assert first["name"] == "consultar_meios_pagamento_mensal"
        assert first["inputSchema"]["required"] == ["ano_mes"]
        assert "description" in first

    @pytest.mark.asyncio
    async def test_tools_call_success(self, protocol):
        response = await protocol.process(
            _request("tools/call", {"name": "consultar_meios_pagamento_mensal", "arguments": {"ano_mes": "202312"}})
        )
        result = response["result"]
        assert result["isError"] is False
        assert json.loads(result["content"][0]["text"]) == {"value": [{"AnoMes": "202312", "Pix": 100}]}

    @pytest.mark.asyncio
    async def test_tools_call_failure_is_result_not_error(self, protocol, stub_client):
        response = await protocol.process(_request("tools/call", {"name": "consultar_transacoes_cartoes"}))
        assert "error" not in response
        assert response["result"]["isError"] is True
        assert "consultar_transacoes_cartoes" in response["result"]["content"][0]["text"]
        assert stub_client.calls == []

    @pytest.mark.asyncio
    async def test_tools_call_without_name(self, protocol):
        response = await protocol.process(_request("tools/call", {"arguments": {}}))
        assert response["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_unknown_method(self, protocol):
        response = await protocol.process(_request("resources/list"))
        assert response["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_notifications_get_no_response(self, protocol):
        assert await protocol.process({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None
        assert await protocol.process({"jsonrpc": "2.0", "method": "ping"}) is None

    @pytest.mark.asyncio
    async def test_invalid_request(self, protocol):
        response = await protocol.process("not a message")
        assert response["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_batch(self, protocol):
        responses = await protocol.process(
            [
                _request("ping", request_id=1),
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                _request("tools/list", request_id=2),
            ]
        )
        assert [r["id"] for r in responses] == [1, 2]
