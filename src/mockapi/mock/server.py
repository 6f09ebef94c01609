"""
MockAPI Mock Server

FastAPI-based HTTP server that serves mocked responses from a declarative
route config.

Features:
- Catch-all routing through the ranked route table
- Template expansion, conditions, delays and binary payloads
- Admin API for inspecting and reloading routes
- Optional Swagger UI generated from the config
- Hot reload when the config file changes
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, asdict
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse
import uvicorn
from watchfiles import Change, awatch

from ..common import safe_json_parse
from ..config import ConfigLoader, ConfigError
from ..docs import OpenAPIGenerator
from .dispatcher import DispatchResult, RequestDispatcher
from .generator import TemplateEngine
from .matcher import RouteTable
from .routes import HTTP_METHODS


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "info"
    log_requests: bool = True  # Log "<METHOD> <path>" for each request

    # Config selection
    profile: Optional[str] = None  # Profile name for profiled configs
    watch: bool = False  # Reload routes when the config file changes

    # HTTP extras
    cors: bool = True
    swagger: bool = False  # Serve /swagger.json and /docs

    # Synthetic data
    faker_locale: str = "en_US"
    faker_seed: Optional[int] = None  # Seed for reproducible fake data

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class MockServer:
    """
    FastAPI-based mock server for declarative route configs.

    Example:
        # Load a config and start the server
        server = MockServer('mockapi.json')
        server.start(port=3000)

        # With custom config
        config = MockConfig(profile='demo', watch=True, swagger=True)
        server = MockServer('mockapi.yaml', config=config)
        server.start()
    """

    def __init__(
        self,
        config_path: str,
        config: Optional[MockConfig] = None,
        engine: Optional[TemplateEngine] = None
    ):
        """
        Initialize mock server.

        Args:
            config_path: Path to a .json, .yaml or .yml route config
            config: Optional MockConfig for server behavior
            engine: Optional TemplateEngine instance (will create if None)

        Raises:
            ConfigError: If the config cannot be loaded
        """
        self.config_path = Path(config_path).resolve()
        self.config = config or MockConfig()
        self.loader = ConfigLoader(str(self.config_path))

        # Setup logging first (before loading routes)
        self.logger = logging.getLogger("mockapi.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.engine = engine or TemplateEngine(
            faker_locale=self.config.faker_locale,
            faker_seed=self.config.faker_seed
        )
        self.dispatcher = RequestDispatcher(
            table=self._load_table(),
            engine=self.engine,
            log_requests=self.config.log_requests
        )
        self._watch_task: Optional[asyncio.Task] = None

        # Setup FastAPI app
        self.app = self._create_app()

    @property
    def table(self) -> RouteTable:
        return self.dispatcher.table

    def _load_table(self) -> RouteTable:
        """Load the config file and compile its routes."""
        definitions = self.loader.load_routes(self.config.profile)
        table = RouteTable.build(definitions)
        self.logger.info(f"Loaded {len(table)} routes")
        return table

    def reload(self) -> RouteTable:
        """
        Reload routes from disk and swap them in.

        Requests already in flight finish against the previous table.

        Raises:
            ConfigError: If the new config is invalid (old table stays)
        """
        table = self._load_table()
        self.dispatcher.swap_table(table)
        self.logger.info("Config reloaded successfully")
        return table

    def _route_summary(self) -> List[Dict[str, Any]]:
        summary = []
        table = self.table
        for route in table.routes:
            endpoint = table.endpoint_for(route)
            summary.append({
                'method': route.method,
                'path': route.normalized_path,
                'params': list(route.param_names),
                'status': endpoint.status,
                'delay': endpoint.delay,
                'condition': endpoint.condition
            })
        return summary

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="MockAPI Server",
            description="Mock HTTP server serving responses from a route config",
            version="1.0.0",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            lifespan=self._lifespan
        )

        if self.config.cors:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=list(HTTP_METHODS),
                allow_headers=["*"]
            )

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/routes")
            async def list_routes():
                """List routes in match order."""
                routes = self._route_summary()
                return JSONResponse(content={
                    'total': len(routes),
                    'profile': self.config.profile,
                    'routes': routes
                })

            @app.post(f"{self.config.admin_prefix}/reload")
            async def reload_routes():
                """Reload the config file from disk."""
                try:
                    table = self.reload()
                except ConfigError as e:
                    self.logger.error(f"Failed to reload config: {e}")
                    return JSONResponse(
                        content={'error': 'Failed to reload config', 'message': str(e)},
                        status_code=500
                    )
                return JSONResponse(content={'status': 'reloaded', 'routes': len(table)})

        if self.config.swagger:
            @app.get("/swagger.json")
            async def swagger_document():
                """OpenAPI document generated from the current routes."""
                return JSONResponse(content=self._openapi_document())

            @app.get("/docs")
            async def swagger_ui():
                """Swagger UI for the generated document."""
                return get_swagger_ui_html(
                    openapi_url="/swagger.json",
                    title="MockAPI Documentation",
                    swagger_ui_parameters={
                        'persistAuthorization': True,
                        'displayRequestDuration': True
                    }
                )

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=list(HTTP_METHODS))
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return await self._handle_request(request)

        return app

    def _openapi_document(self) -> Dict[str, Any]:
        generator = OpenAPIGenerator(
            title="MockAPI Documentation",
            version="1.0.0",
            description="Auto-generated API documentation from MockAPI configuration",
            server_url=f"http://{self.config.host}:{self.config.port}"
        )
        table = self.table
        return generator.generate(
            [(route.key, table.endpoint_for(route)) for route in table.routes]
        )

    async def _handle_request(self, request: Request) -> Response:
        """
        Handle incoming request and serve mock response.

        Args:
            request: FastAPI Request object

        Returns:
            FastAPI Response with mocked data
        """
        result = await self.dispatcher.dispatch(
            method=request.method,
            path=self._request_path(request),
            query=self._query_params(request),
            headers=dict(request.headers),
            body=await self._parse_body(request)
        )
        return self._to_response(result)

    @staticmethod
    def _request_path(request: Request) -> str:
        """
        Path as sent on the wire, still percent-encoded.

        Parameters are decoded once, after matching.
        """
        raw_path = request.scope.get('raw_path')
        if raw_path:
            return raw_path.decode('latin-1').split('?', 1)[0]
        return request.url.path

    @staticmethod
    def _query_params(request: Request) -> Dict[str, Union[str, List[str]]]:
        query = {}
        for key in request.query_params.keys():
            values = request.query_params.getlist(key)
            query[key] = values[0] if len(values) == 1 else values
        return query

    @staticmethod
    async def _parse_body(request: Request) -> Any:
        """Parse JSON or url-encoded bodies; anything else is None."""
        raw = await request.body()
        if not raw:
            return None

        content_type = request.headers.get('content-type', '').lower()
        if 'json' in content_type:
            return safe_json_parse(raw, default=None)
        if 'application/x-www-form-urlencoded' in content_type:
            return dict(parse_qsl(raw.decode('utf-8', errors='replace'), keep_blank_values=True))
        return None

    @staticmethod
    def _to_response(result: DispatchResult) -> Response:
        """Turn a DispatchResult into a FastAPI Response."""
        return Response(
            content=result.content,
            status_code=result.status_code,
            headers=result.headers,
            media_type=result.media_type
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Start and stop the config watcher with the app."""
        if self.config.watch:
            self._watch_task = asyncio.create_task(self._watch_config())
            self.logger.info(f"Watching {self.config_path} for changes...")
        try:
            yield
        finally:
            if self._watch_task is not None:
                self._watch_task.cancel()
                try:
                    await self._watch_task
                except asyncio.CancelledError:
                    pass
                self._watch_task = None

    async def _watch_config(self) -> None:
        """
        Reload whenever the config file changes on disk.

        The parent directory is watched rather than the file so that saves
        which rename a temp file over the config keep being noticed.
        """
        async for changes in awatch(self.config_path.parent, watch_filter=self._is_config_change):
            self.logger.info("Config file changed, reloading...")
            try:
                self.reload()
            except ConfigError as e:
                self.logger.error(f"Failed to reload config: {e}")

    def _is_config_change(self, change: Change, path: str) -> bool:
        """Watch filter accepting only non-delete changes to the config file."""
        return change != Change.deleted and Path(path) == self.config_path

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = False
    ):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable uvicorn access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        print(f"MockAPI server starting...")
        print(f"   Server: http://{actual_host}:{actual_port}")
        print(f"   Config: {self.config_path}")
        if self.config.profile:
            print(f"   Profile: {self.config.profile}")

        if self.config.swagger:
            print(f"   Swagger docs: http://{actual_host}:{actual_port}/docs")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/routes")

        print(f"\n   Available routes:")
        for route in self.table.available_routes():
            print(f"     {route}")
        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    config_path: str,
    host: str = "127.0.0.1",
    port: int = 3000,
    profile: Optional[str] = None,
    watch: bool = False,
    cors: bool = True,
    swagger: bool = False,
    log_level: str = "info",
    log_requests: bool = True,
    faker_locale: str = "en_US",
    faker_seed: Optional[int] = None,
    admin_enabled: bool = True
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        config_path: Path to the route config file
        host: Host to bind to
        port: Port to bind to
        profile: Profile to serve from a profiled config
        watch: Reload routes when the config file changes
        cors: Allow cross-origin requests
        swagger: Serve generated Swagger docs
        log_level: Logging level name
        log_requests: Log each request
        faker_locale: Locale for synthetic data
        faker_seed: Seed for reproducible synthetic data
        admin_enabled: Enable the admin API

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('mockapi.json', port=4000, swagger=True)
        server.start()
    """
    config = MockConfig(
        host=host,
        port=port,
        profile=profile,
        watch=watch,
        cors=cors,
        swagger=swagger,
        log_level=log_level,
        log_requests=log_requests,
        faker_locale=faker_locale,
        faker_seed=faker_seed,
        admin_enabled=admin_enabled
    )

    return MockServer(config_path, config=config)
