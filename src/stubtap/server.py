"""
StubTap Stub Server

FastAPI-based HTTP test double that answers requests from registered stubs.

Features:
- Stub dispatch in registration order (first applicable stub wins)
- Call recording for later verification
- Configurable fallback response for unmatched calls
- Response delays
- Admin API for inspecting calls, stubs and metrics
- YAML-defined stubs and configuration
"""

from __future__ import annotations  # Enable forward references for type hints

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import yaml

try:
    from fastapi import FastAPI, Request, Response
    from fastapi.responses import JSONResponse
    import uvicorn
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from .semantics import Call, Stub, StubResponse


@dataclass
class StubServerConfig:
    """Configuration for stub server behavior."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"
    verbose_mode: bool = False  # Print one line per request in console

    # Fallback behavior
    fallback_status: int = 404
    fallback_body: str = '{"error": "No stub matches the request"}'
    fallback_content_type: str = "application/json"

    # Call recording
    record_calls: bool = True
    calls_limit: int = 1000  # Maximum number of calls to keep (0 = unlimited)

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StubServerConfig':
        """Create config from dictionary, ignoring unknown keys."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a config mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'StubServerConfig':
        """Load config from a YAML file (top-level mapping or a 'config' section)."""
        try:
            with open(yaml_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {yaml_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {yaml_path}, got {type(data).__name__}")

        return cls.from_dict(data.get('config', data))


@dataclass
class StubMetrics:
    """Track stub server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    unmatched_requests: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'matched_requests': self.matched_requests,
            'unmatched_requests': self.unmatched_requests,
            'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class StubServer:
    """
    HTTP stub server.

    Holds an ordered list of stubs. For every incoming call the stubs are
    probed in registration order and the first applicable one produces the
    response; unmatched calls get the configured fallback response.

    Example:
        server = StubServer()
        server.add_stub(Stub(get('/users'), json_content([])))

        client = TestClient(server.get_app())
        client.get('/users')

        # Or serve over the network
        server.start(port=9090)
    """

    def __init__(
        self,
        config: Optional[StubServerConfig] = None,
        stubs: Optional[List[Stub]] = None
    ):
        """
        Initialize stub server.

        Args:
            config: Optional StubServerConfig for server behavior
            stubs: Stubs to register up front
        """
        self.config = config or StubServerConfig()
        self.metrics = StubMetrics()
        self._stubs: List[Stub] = list(stubs or [])
        self._calls: List[Call] = []
        self._lock = threading.RLock()
        self._app = None

        # Child loggers (stubtap.stub, stubtap.loader) inherit this level
        logging.getLogger("stubtap").setLevel(getattr(logging, self.config.log_level.upper()))
        self.logger = logging.getLogger("stubtap.server")

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'StubServer':
        """Create a server configured and stubbed from a YAML definitions file."""
        from .loader import StubLoader

        definitions = StubLoader(yaml_path).load()
        return cls(config=definitions.config, stubs=definitions.stubs)

    # Stub table

    def add_stub(self, stub: Stub) -> Stub:
        with self._lock:
            self._stubs.append(stub)
        self.logger.debug(f"Registered stub: {stub.condition.description}")
        return stub

    def load_stubs(self, yaml_path: str) -> List[Stub]:
        """Register every stub defined in a YAML file."""
        from .loader import StubLoader

        stubs = StubLoader(yaml_path).load().stubs
        for stub in stubs:
            self.add_stub(stub)
        return stubs

    @property
    def stubs(self) -> Tuple[Stub, ...]:
        return tuple(self._stubs)

    def clear_stubs(self):
        with self._lock:
            self._stubs.clear()

    # Recorded calls

    @property
    def calls(self) -> Tuple[Call, ...]:
        return tuple(self._calls)

    def clear_calls(self):
        with self._lock:
            self._calls.clear()

    def reset(self):
        """Forget recorded calls and metrics (stubs stay registered)."""
        with self._lock:
            self._calls.clear()
            self.metrics = StubMetrics()

    def _record_call(self, call: Call):
        if not self.config.record_calls:
            return

        self._calls.append(call)
        if self.config.calls_limit > 0 and len(self._calls) > self.config.calls_limit:
            self._calls.pop(0)

    # Dispatch

    def find_stub(self, call: Call) -> Optional[Stub]:
        """First stub, in registration order, that is applicable to the call."""
        for stub in self._stubs:
            if stub.is_applicable(call):
                return stub
        return None

    def dispatch(self, call: Call) -> StubResponse:
        """
        Produce the response for a call.

        Selecting the stub and applying it happen as one decision round, so
        concurrent calls cannot consume the same sequence slot.

        Args:
            call: Incoming call

        Returns:
            Response from the matching stub, or the fallback response
        """
        self.logger.debug(f"Incoming: {call.method} {call.url}")

        with self._lock:
            self.metrics.total_requests += 1
            self._record_call(call)

            stub = self.find_stub(call)
            if stub is not None:
                self.metrics.matched_requests += 1
                return stub.apply(StubResponse())

            self.metrics.unmatched_requests += 1

        self.logger.warning(f"No stub matches {call.method} {call.url}")
        return self._fallback_response()

    def _fallback_response(self) -> StubResponse:
        return StubResponse(
            status=self.config.fallback_status,
            headers={'Content-Type': self.config.fallback_content_type},
            body=self.config.fallback_body.encode('utf-8')
        )

    # FastAPI application

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        if self._app is None:
            self._app = self._create_app()
        return self._app

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        if not FASTAPI_AVAILABLE:
            raise ImportError("FastAPI is required for the stub server app. Install with: pip install fastapi uvicorn")

        app = FastAPI(
            title="StubTap Stub Server",
            description="HTTP test double answering requests from registered stubs",
            version="1.0.0"
        )

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.get(f"{self.config.admin_prefix}/calls")
            async def get_calls():
                """Get all recorded calls."""
                return JSONResponse(content={
                    'total': len(self._calls),
                    'limit': self.config.calls_limit,
                    'recording_enabled': self.config.record_calls,
                    'calls': [call.to_dict() for call in self.calls]
                })

            @app.delete(f"{self.config.admin_prefix}/calls")
            async def clear_calls():
                """Clear all recorded calls."""
                count = len(self._calls)
                self.clear_calls()
                return JSONResponse(content={
                    'status': 'cleared',
                    'cleared_count': count
                })

            @app.get(f"{self.config.admin_prefix}/stubs")
            async def list_stubs():
                """List registered stubs with their usage."""
                return JSONResponse(content={
                    'total': len(self._stubs),
                    'stubs': [stub.to_dict() for stub in self.stubs]
                })

            @app.get(f"{self.config.admin_prefix}/config")
            async def get_config():
                """Get current configuration."""
                return JSONResponse(content={
                    'fallback_status': self.config.fallback_status,
                    'record_calls': self.config.record_calls,
                    'calls_limit': self.config.calls_limit,
                    'total_stubs': len(self._stubs)
                })

            @app.post(f"{self.config.admin_prefix}/reset")
            async def reset():
                """Reset recorded calls and metrics."""
                self.reset()
                return JSONResponse(content={'status': 'reset'})

        # Main catch-all route for stubbing
        @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])
        async def stub_request(request: Request, path: str):
            """Handle incoming requests and serve stubbed responses."""
            return await self._handle_request(request)

        return app

    async def _handle_request(self, request: Request) -> Response:
        """
        Handle incoming request and serve the stubbed response.

        Args:
            request: FastAPI Request object

        Returns:
            FastAPI Response built from the stub response
        """
        call = Call.from_request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            body=await request.body()
        )

        stub_response = self.dispatch(call)

        if self.config.verbose_mode:
            timestamp = datetime.now().strftime("%H:%M:%S")
            print(f"[{timestamp}] {call.method} {call.url} -> {stub_response.status}")

        if stub_response.delay_ms > 0:
            await asyncio.sleep(stub_response.delay_ms / 1000)

        return self._create_response(stub_response)

    def _create_response(self, stub_response: StubResponse) -> Response:
        """Create FastAPI Response from a stub response."""
        # Filter headers that the ASGI server sets itself
        headers_to_skip = {'content-length', 'transfer-encoding', 'connection'}
        filtered_headers = {
            k: v for k, v in stub_response.headers.items()
            if k.lower() not in headers_to_skip
        }

        return Response(
            content=stub_response.body,
            status_code=stub_response.status,
            headers=filtered_headers
        )

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the stub server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port
        app = self.get_app()

        self.logger.info(f"StubTap server starting on {actual_host}:{actual_port} with {len(self._stubs)} stubs")
        if self.config.admin_enabled:
            self.logger.info(f"Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/calls")

        uvicorn.run(
            app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def summary(self) -> str:
        """JSON summary of stubs and metrics, handy in failing test output."""
        return json.dumps({
            'metrics': self.metrics.to_dict(),
            'stubs': [stub.to_dict() for stub in self.stubs]
        }, indent=2)
