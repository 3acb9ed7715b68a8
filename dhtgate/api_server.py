"""
DHT HTTP API Server

FastAPI facade over a DHT node. Lets external services (web gateways,
dashboards) store and find values and register/resolve usernames without
speaking the DHT protocol.

Endpoints:
- GET  /api/health - Health check
- GET  /api/node - Node information
- GET  /api/username/{name} - Lookup username registration
- POST /api/username - Register a username
- GET  /api/dht/find/{id} - Find a value by ID
- POST /api/dht/store - Store a value in the DHT

License: MIT
"""

import asyncio
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Dict, Mapping, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger

from dhtgate.core.codec import ValueCodec
from dhtgate.core.errors import GatewayError, InvalidBody, MissingField, NotFound, StoreFailure
from dhtgate.core.identifiers import IdentifierDeriver
from dhtgate.core.username_directory import DEFAULT_NAMESPACE, UsernameDirectory
from dhtgate.p2p.facade import DHTClient, Value, await_store
from dhtgate.p2p.local_node import LocalDHTNode


# =============================================================================
# Configuration
# =============================================================================

class ServerConfig(BaseModel):
    """API server configuration (read once at startup)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = Field(
        default="127.0.0.1",
        description="Server host (use 0.0.0.0 for Docker/cloud, set via DHT_API_HOST env var)"
    )
    port: int = Field(default=8091, description="Server port")
    namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        description="Key prefix partitioning the username directory"
    )
    service_name: str = Field(default="dht-http-api", description="Name reported by /api/health")

    # Logging
    log_dir: Optional[Path] = Field(default=None, description="Directory for rotating log files")
    log_level: str = Field(default="INFO", description="Log level")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build configuration from DHT_API_* environment variables."""
        values: Dict[str, Any] = {}
        env_map = {
            "host": "DHT_API_HOST",
            "port": "DHT_API_PORT",
            "namespace": "DHT_API_NAMESPACE",
            "service_name": "DHT_API_SERVICE_NAME",
            "log_dir": "DHT_API_LOG_DIR",
            "log_level": "DHT_API_LOG_LEVEL",
        }
        for field_name, env_name in env_map.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw
        return cls.model_validate(values)

    @classmethod
    def from_mapping(cls, configuration: Mapping[str, Any]) -> "ServerConfig":
        """Build configuration from a plain service configuration map."""
        return cls.model_validate(dict(configuration))


# =============================================================================
# API Models
# =============================================================================

def ensure_utf8(value: str) -> str:
    """Reject strings that cannot be encoded, such as lone surrogates."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("text is not encodable as UTF-8")
    return value


Utf8Text = Annotated[str, AfterValidator(ensure_utf8)]


class UsernameRegisterRequest(BaseModel):
    """Body of POST /api/username (field presence is checked by the handler)."""

    username: Optional[Utf8Text] = None
    nodeId: Optional[Utf8Text] = None
    endpoint: Optional[Utf8Text] = None


class DhtStoreRequest(BaseModel):
    """Body of POST /api/dht/store."""

    data: Optional[Utf8Text] = None


# =============================================================================
# Context
# =============================================================================

@dataclass(frozen=True)
class GatewayContext:
    """Everything a handler needs; built once per app."""

    config: ServerConfig
    node: DHTClient
    deriver: IdentifierDeriver
    codec: ValueCodec
    directory: UsernameDirectory

    @classmethod
    def build(cls, node: DHTClient, config: ServerConfig) -> "GatewayContext":
        deriver = IdentifierDeriver()
        codec = ValueCodec()
        return cls(
            config=config,
            node=node,
            deriver=deriver,
            codec=codec,
            directory=UsernameDirectory(node, deriver, codec, namespace=config.namespace),
        )


def get_context(request: Request) -> GatewayContext:
    return request.app.state.context


# =============================================================================
# Routes
# =============================================================================

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check(ctx: GatewayContext = Depends(get_context)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": ctx.config.service_name,
        "nodeId": ctx.node.get_id().hex,
    }


@router.get("/node")
async def node_info(ctx: GatewayContext = Depends(get_context)):
    """Node identity and reachability."""
    return {
        "nodeId": ctx.node.get_id().hex,
        "address": ctx.node.get_address4(),
        "port": ctx.node.get_port(),
    }


@router.get("/username/{name}")
async def lookup_username(name: str, ctx: GatewayContext = Depends(get_context)):
    """Resolve a username (case-insensitive) to its registered node."""
    record = await ctx.directory.lookup(name)
    return record.to_response()


@router.post("/username")
async def register_username(
    body: UsernameRegisterRequest,
    ctx: GatewayContext = Depends(get_context),
):
    """
    Register a username.

    Overwrites any earlier registration of the same username.
    """
    username = await ctx.directory.register(
        body.username or "",
        body.nodeId or "",
        body.endpoint or "",
    )
    return {"success": True, "username": username}


@router.get("/dht/find/{id}")
async def dht_find(id: str, ctx: GatewayContext = Depends(get_context)):
    """Find a raw value by its textual identifier."""
    key = ctx.deriver.parse(id)

    try:
        value = await await_store(ctx.node.find_value(key))
    except StoreFailure as e:
        logger.error("Error finding value {}: {}", key.hex, e.message)
        raise

    if value is None:
        raise NotFound("Value not found")

    return {"id": key.hex, "data": ctx.codec.decode_raw(value.data)}


@router.post("/dht/store")
async def dht_store(body: DhtStoreRequest, ctx: GatewayContext = Depends(get_context)):
    """Store raw text; the store assigns the identifier."""
    if body.data is None:
        raise MissingField("Missing 'data' field")

    value = Value.of(ctx.codec.encode_raw(body.data))
    try:
        receipt = await await_store(ctx.node.store_value(value))
    except StoreFailure as e:
        logger.error("Error storing value {}: {}", value.id.hex, e.message)
        raise

    logger.debug("Stored raw value {}", receipt.id.hex)
    return {"success": True, "id": receipt.id.hex}


# =============================================================================
# Error handling
# =============================================================================

async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render any GatewayError as a single JSON error response."""
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a 400, not FastAPI's default 422."""
    return await gateway_error_handler(request, InvalidBody())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unrouted paths and disallowed methods still answer with an error field."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: anything unexpected is still a JSON 500 with an error field."""
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# =============================================================================
# FastAPI Application
# =============================================================================

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def cors_middleware(request: Request, call_next):
    """Attach CORS headers; answer every OPTIONS request with 204."""
    if request.method == "OPTIONS":
        response = Response(status_code=status.HTTP_204_NO_CONTENT)
    else:
        try:
            response = await call_next(request)
        except Exception as e:
            response = await unhandled_error_handler(request, e)
    response.headers.update(CORS_HEADERS)
    return response


def create_app(node: DHTClient, config: Optional[ServerConfig] = None) -> FastAPI:
    """
    Build the API app for a DHT node.

    Args:
        node: DHT node implementing the client facade
        config: Server configuration (defaults if omitted)
    """
    config = config or ServerConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("✅ HTTP API started for node {}", node.get_id().hex[:16])
        logger.info("   Listening: {}:{}", config.host, config.port)
        logger.info("   Username namespace: {}", config.namespace)
        yield
        logger.info("HTTP API stopped")

    app = FastAPI(
        title="DHT HTTP API",
        description="REST facade for DHT value storage and username directory",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = GatewayContext.build(node, config)

    app.middleware("http")(cors_middleware)
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)

    return app


# =============================================================================
# Service lifecycle
# =============================================================================

class HttpApiService:
    """
    Runs the API inside an existing event loop, next to the node it serves.

    Lifecycle: init() -> start() -> stop().
    """

    def __init__(self):
        self.config: Optional[ServerConfig] = None
        self.app: Optional[FastAPI] = None
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    def init(self, node: DHTClient, configuration: Optional[Mapping[str, Any]] = None):
        """Bind to a node; configuration may carry "port" and "host"."""
        self.config = ServerConfig.from_mapping(configuration or {})
        self.app = create_app(node, self.config)
        logger.info(
            "HttpApiService initialized with port: {}, host: {}",
            self.config.port, self.config.host,
        )

    async def start(self):
        """Start serving on a background task."""
        if self.app is None:
            raise RuntimeError("HttpApiService.start() called before init()")

        server_config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
        self._server = uvicorn.Server(server_config)
        self._task = asyncio.create_task(self._server.serve())
        logger.info("HTTP API server starting on {}:{}", self.config.host, self.config.port)

    async def stop(self):
        """Ask uvicorn to exit and wait for it."""
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            await self._task
        self._server = None
        self._task = None
        logger.info("HttpApiService stopped")


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Run API server over a local DHT node."""
    config = ServerConfig.from_env()

    # Configure logging
    if config.log_dir is not None:
        logger.add(
            str(config.log_dir / "dht_api_{time}.log"),
            rotation="1 day",
            retention="30 days",
            level=config.log_level,
        )

    node = LocalDHTNode()

    logger.info("🚀 Starting DHT HTTP API server on {}:{}", config.host, config.port)
    logger.info("   Service: {}", config.service_name)

    uvicorn.run(
        create_app(node, config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
