"""Main MCP server implementation supporting stdio, HTTP/SSE and REST transports."""

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sse_starlette.sse import EventSourceResponse, ServerSentEvent
from contextlib import asynccontextmanager
import asyncio
import json
import logging
import sys
from typing import Any, AsyncIterator, Dict, Optional
import uvicorn

from . import __version__
from .auth import verify_auth
from .client import RemoteClient
from .config import settings
from .dispatcher import Dispatcher, ToolInvocation
from .errors import DuplicateSession, SessionNotFound
from .logging_config import setup_logging
from .protocol import CAPABILITIES, SERVER_NAME, McpProtocol
from .sessions import END_OF_STREAM, Session, SessionManager, new_session_id
from .tools.catalog import default_registry

# Configure logging (console on stderr, optional file under LOG_DIR)
setup_logging()
logger = logging.getLogger(__name__)

DESCRIPTION = "Servidor MCP para API de Dados Abertos de Meios de Pagamento do Banco Central do Brasil"
MCP_HEADERS = {"X-MCP-Server": SERVER_NAME, "X-MCP-Version": __version__}

# Seconds between checks for a closed session while the stream is idle
SESSION_POLL_SECONDS = 5.0


class ToolCallFailed(Exception):
    """Raised from the stdio call_tool handler so the SDK marks the result isError."""


# Shared core: one registry and one dispatcher behind every transport
registry = default_registry()
remote = RemoteClient(settings.api_base_url, timeout=settings.request_timeout_seconds)
dispatcher = Dispatcher(registry, remote)
protocol = McpProtocol(registry, dispatcher)


async def handle_session_message(session: Session, message: Dict[str, Any]) -> None:
    """Process one JSON-RPC message routed to a session and push the reply down its stream."""
    response = await protocol.process(message)
    if response is None:
        return
    for item in response if isinstance(response, list) else [response]:
        if not session.send(item):
            logger.debug("Session %s closed before reply to id=%s", session.session_id, item.get("id"))


sessions = SessionManager(handle_session_message)


# MCP Server instance (stdio transport)
mcp = Server(SERVER_NAME, version=__version__)


@mcp.list_tools()
async def list_tools() -> list[Tool]:
    """List all available MCP tools."""
    return [
        Tool(name=definition.name, description=definition.description, inputSchema=definition.input_schema())
        for definition in registry.list_tools()
    ]


# Arguments are validated by the dispatcher so every transport reports the same errors
@mcp.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Execute MCP tool by name."""
    result = await dispatcher.invoke(ToolInvocation(name, arguments))
    if result.is_error:
        raise ToolCallFailed(result.text)
    return [TextContent(type="text", text=result.payload)]


# FastAPI app for HTTP/SSE transport
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting BCB Payments MCP Server...")
    logger.info(f"Remote API: {settings.api_base_url}")
    logger.info(f"Tools: {len(registry)} registered")
    if settings.api_keys_list:
        logger.info("Auth: API key required for tool and session endpoints")
    else:
        logger.info("Auth: disabled (no API_KEYS configured)")

    yield

    await sessions.close_all()
    await remote.aclose()
    logger.info("Remote client closed")


app = FastAPI(
    title="BCB Payments MCP Server",
    description=DESCRIPTION,
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
)


@app.exception_handler(SessionNotFound)
async def session_not_found_handler(request: Request, exc: SessionNotFound):
    logger.info("Message for unknown session %s", exc.session_id)
    return JSONResponse(status_code=410, content={"error": "Session not found", "sessionId": exc.session_id})


@app.exception_handler(DuplicateSession)
async def duplicate_session_handler(request: Request, exc: DuplicateSession):
    logger.error("Session id collision: %s", exc.session_id)
    return JSONResponse(status_code=409, content={"error": "Session already exists", "sessionId": exc.session_id})


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": SERVER_NAME}


@app.get("/")
async def root():
    return {
        "name": SERVER_NAME,
        "version": __version__,
        "protocol": "mcp",
        "description": DESCRIPTION,
        "endpoints": {
            "tools": "/tools",
            "callTool": "/tools/call",
            "sse": "/sse",
            "message": "/message?sessionId=...",
            "mcp": "/mcp",
            "health": "/health",
            "info": "/mcp/info",
        },
        "capabilities": CAPABILITIES,
    }


@app.get("/mcp/info")
async def mcp_info():
    return {"name": SERVER_NAME, "version": __version__, "protocol": "mcp", "capabilities": CAPABILITIES}


# Discrete request/response surface

@app.get("/tools", dependencies=[Depends(verify_auth)])
async def tools_endpoint():
    """List the tool catalog."""
    return JSONResponse(content={"tools": protocol.list_tools()}, headers=MCP_HEADERS)


@app.post("/tools/call", dependencies=[Depends(verify_auth)])
async def call_tool_endpoint(request: Request):
    """Invoke a tool. Body: {"name": ..., "arguments": {...}}."""
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body", "isError": True})

    name = payload.get("name") if isinstance(payload, dict) else None
    if not isinstance(name, str) or not name.strip():
        return JSONResponse(status_code=400, content={"error": "Tool name is required", "isError": True})

    result = await dispatcher.invoke(ToolInvocation(name, payload.get("arguments") or {}))
    return JSONResponse(content=result.to_mcp(), headers=MCP_HEADERS)


@app.post("/mcp", dependencies=[Depends(verify_auth)])
async def mcp_endpoint(request: Request):
    """Single-shot JSON-RPC endpoint. Notifications return 202."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}},
        )

    response = await protocol.process(body)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(content=response, headers={"Cache-Control": "no-store"})


# Streaming session surface (MCP HTTP+SSE)

def message_endpoint_url(request: Request, session_id: str) -> str:
    """URL announced in the `endpoint` event; relative unless PUBLIC_BASE_URL is set."""
    base = (settings.public_base_url or request.scope.get("root_path", "")).rstrip("/")
    return f"{base}/message?sessionId={session_id}"


async def session_events(request: Request, session: Session) -> AsyncIterator[ServerSentEvent]:
    """Yield the endpoint event, then every message queued for the session until it ends."""
    try:
        yield ServerSentEvent(event="endpoint", data=message_endpoint_url(request, session.session_id))
        while not session.closed:
            if await request.is_disconnected():
                break
            try:
                message = await asyncio.wait_for(session.channel.get(), timeout=SESSION_POLL_SECONDS)
            except asyncio.TimeoutError:
                continue
            if message is END_OF_STREAM:
                break
            yield ServerSentEvent(event="message", data=json.dumps(message, ensure_ascii=False))
    finally:
        await sessions.close(session.session_id)


@app.get("/sse", dependencies=[Depends(verify_auth)])
async def sse_endpoint(request: Request):
    """Open a streaming session. The first event tells the client where to POST messages."""
    client = request.client
    channel: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=settings.session_queue_size)
    session = await sessions.open(new_session_id(), channel)
    logger.info(
        "[SSE] Connection established from %s:%s (session=%s)",
        client.host if client else None,
        client.port if client else None,
        session.session_id,
    )
    return EventSourceResponse(
        session_events(request, session),
        ping=settings.sse_ping_interval_seconds,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.post("/message", dependencies=[Depends(verify_auth)])
@app.post("/messages", dependencies=[Depends(verify_auth)])
async def message_endpoint(request: Request, session_id: Optional[str] = Query(None, alias="sessionId")):
    """Deliver a JSON-RPC message to an open session. The reply arrives on the SSE stream."""
    session_id = session_id or request.query_params.get("session_id")
    if not session_id:
        return JSONResponse(status_code=400, content={"error": "sessionId is required"})
    if session_id not in sessions:
        raise SessionNotFound(session_id)

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

    await sessions.route(session_id, body)
    return Response(content="Accepted", status_code=202)


def is_stdio_mode() -> bool:
    """Detect if we should run in stdio mode (for desktop clients) vs HTTP/SSE mode."""
    transport = settings.transport.lower()
    if transport in ("stdio", "http"):
        return transport == "stdio"
    # auto: stdin is a pipe when launched by an MCP client
    return not sys.stdin.isatty()


async def stdio_main():
    """Run the MCP server in stdio mode."""
    logger.info("Starting BCB Payments MCP Server in stdio mode...")
    logger.info(f"Remote API: {settings.api_base_url}")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await mcp.run(read_stream, write_stream, mcp.create_initialization_options())
    finally:
        await remote.aclose()
        logger.info("Remote client closed")


def main():
    """Run the MCP server (auto-detects stdio vs HTTP/SSE mode)."""
    if is_stdio_mode():
        asyncio.run(stdio_main())
    else:
        logger.info("Starting BCB Payments MCP Server in HTTP/SSE mode...")
        uvicorn.run(
            "bcb_mcp.server:app",
            host=settings.server_host,
            port=settings.server_port,
            reload=settings.server_reload,
            log_level=settings.log_level.lower(),
        )


if __name__ == "__main__":
    main()
