"""
tpsim Simulation Server

FastAPI-based HTTP double that replays a fixture Simulation.

Features:
- First-match-wins replay of recorded responses
- Partial, order-independent query matching
- Diagnostic 404 for requests no fixture answers
- Inbound request log for test assertions
- Optional admin API
- Background-thread uvicorn listener for use inside tests
"""

import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import uvicorn

from ..capture.utils import parse_query
from ..common.config import ServerConfig
from ..common.loader import SimulationLoader
from ..common.models import Pair, Simulation, find_header
from .matcher import SimulationMatcher

DEFAULT_CONTENT_TYPE = "application/json"

# Headers the ASGI server computes itself
SKIPPED_RESPONSE_HEADERS = {'content-length', 'transfer-encoding', 'connection'}


def bind_socket(host: str, port: int) -> socket.socket:
    """Bound listening socket for uvicorn; port 0 picks a free port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


@dataclass
class RecordedRequest:
    """An inbound request as seen by the server."""

    method: str
    path: str
    query: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'method': self.method, 'path': self.path, 'query': self.query}


class SimulationServer:
    """
    HTTP double serving a fixture Simulation.

    Every request is logged, then answered by the first pair whose request
    matches. Unmatched requests get a 404 with a plain-text diagnostic naming
    the method and URL.

    Example:
        simulation = load_simulations_from_dir("testdata/simulations")

        with SimulationServer(simulation) as server:
            response = requests.get(f"{server.url}/api/v2/UserStory", params={"take": 3})
            assert server.requests()[0].path == "/api/v2/UserStory"
    """

    def __init__(self, simulation: Simulation, config: Optional[ServerConfig] = None):
        """
        Initialize simulation server.

        Args:
            simulation: Fixture pairs to replay (read-only while serving)
            config: Optional ServerConfig
        """
        self.simulation = simulation
        self.config = config or ServerConfig()
        self.matcher = SimulationMatcher(simulation)

        self.logger = logging.getLogger("tpsim.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        # Inbound request log, shared between request handlers
        self._lock = threading.Lock()
        self._requests: List[RecordedRequest] = []

        # Listener state
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        self.port: Optional[int] = None

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="tpsim Simulation Server",
            description="HTTP double replaying recorded API fixtures",
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )

        if self.config.admin_enabled:
            prefix = self.config.admin_prefix

            @app.get(f"{prefix}/requests")
            async def get_requests():
                """Inbound requests seen so far."""
                recorded = self.requests()
                return JSONResponse(content={
                    'total': len(recorded),
                    'requests': [r.to_dict() for r in recorded]
                })

            @app.delete(f"{prefix}/requests")
            async def clear_requests():
                """Clear the inbound request log."""
                count = self.clear_requests()
                return JSONResponse(content={'status': 'cleared', 'cleared_count': count})

            @app.get(f"{prefix}/pairs")
            async def list_pairs():
                """Summary of the loaded fixture pairs."""
                return JSONResponse(content={
                    'total': len(self.simulation),
                    'pairs': [
                        {
                            'description': p.description,
                            'method': p.request.method,
                            'path': p.request.path,
                            'query': p.request.query,
                            'status': p.response.effective_status
                        }
                        for p in self.simulation.pairs
                    ]
                })

        # Catch-all route for replay, any method
        async def replay_request(request: Request):
            """Handle incoming requests and replay fixture responses."""
            return self._handle_request(request)

        app.add_route("/{path:path}", replay_request, methods=None, include_in_schema=False)

        return app

    def _handle_request(self, request: Request) -> Response:
        """
        Log the request and answer it from the first matching pair.

        Write failures (client gone mid-response) end in the ASGI server,
        which drops them; nothing is raised from here.
        """
        method = request.method
        # request.url.path is cut short at a decoded "?"
        path = request.scope["path"]
        query = parse_query(request.scope.get("query_string", b"").decode("latin-1"))

        self._record(RecordedRequest(method=method, path=path, query={k: list(v) for k, v in query.items()}))
        self.logger.debug(f"Incoming: {method} {request.url}")

        result = self.matcher.find_match(method, path, query)
        if result.matched:
            self.logger.debug(f"Matched pair #{result.index}: {result.pair.request.method} {result.pair.request.path}")
            return self._create_response(result.pair)

        self.logger.warning(f"No match found for {method} {request.url}")
        return Response(
            content=f"no matching simulation for {method} {request.url}",
            status_code=404,
            media_type="text/plain"
        )

    def _create_response(self, pair: Pair) -> Response:
        """Build the replayed response for a matched pair."""
        headers = {
            k: v for k, v in pair.response.headers.items()
            if k.lower() not in SKIPPED_RESPONSE_HEADERS
        }
        if not find_header(headers, 'Content-Type'):
            headers['Content-Type'] = DEFAULT_CONTENT_TYPE

        return Response(
            content=pair.response.body_bytes(),
            status_code=pair.response.effective_status,
            headers=headers
        )

    # Request log

    def _record(self, recorded: RecordedRequest) -> None:
        with self._lock:
            self._requests.append(recorded)

    def requests(self) -> List[RecordedRequest]:
        """Copy of all inbound requests, in arrival order."""
        with self._lock:
            return list(self._requests)

    def clear_requests(self) -> int:
        """Clear the request log; returns how many entries were dropped."""
        with self._lock:
            count = len(self._requests)
            self._requests.clear()
            return count

    # Lifecycle

    @property
    def url(self) -> str:
        """Base URL of the running listener."""
        if self.port is None:
            raise RuntimeError("Simulation server is not running")
        return f"http://{self.config.host}:{self.port}"

    def start(self) -> 'SimulationServer':
        """
        Start listening in a background thread.

        Binds config.port (0 picks a free port) and returns once the listener
        accepts connections.
        """
        if self._server is not None:
            raise RuntimeError("Simulation server already started")

        sock = bind_socket(self.config.host, self.config.port)
        self.port = sock.getsockname()[1]

        uvicorn_config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.port,
            log_level=self.config.log_level,
            access_log=False,
            lifespan="off"
        )
        self._server = uvicorn.Server(uvicorn_config)
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={'sockets': [sock]},
            name=f"tpsim-server-{self.port}",
            daemon=True
        )
        self._thread.start()

        deadline = time.monotonic() + self.config.startup_timeout
        while not self._server.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                self.close()
                sock.close()
                raise RuntimeError(f"Simulation server failed to start on {self.config.host}:{self.port}")
            time.sleep(0.01)

        self.logger.info(f"Serving {len(self.simulation)} pairs at {self.url}")
        return self

    def close(self) -> None:
        """Stop the listener without waiting for open connections. Idempotent."""
        if self._server is None or self._closed:
            return
        self._closed = True

        self._server.force_exit = True
        self._server.should_exit = True
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)

        self.logger.info("Simulation server stopped")

    def __enter__(self) -> 'SimulationServer':
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def serve_forever(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Run the server in the foreground until interrupted.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config; 0 picks a free port)
        """
        actual_host = host or self.config.host
        requested_port = port if port is not None else self.config.port

        sock = bind_socket(actual_host, requested_port)
        actual_port = sock.getsockname()[1]

        print(f"🎭 tpsim Simulation Server")
        print(f"   Listening: http://{actual_host}:{actual_port}")
        print(f"   Pairs loaded: {len(self.simulation)}")
        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/requests")
        print()

        uvicorn_config = uvicorn.Config(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level
        )
        uvicorn.Server(uvicorn_config).run(sockets=[sock])

    def get_app(self) -> FastAPI:
        """FastAPI app instance, for TestClient or custom deployment."""
        return self.app


def create_simulation_server(
    path: str,
    host: str = "127.0.0.1",
    port: int = 0,
    admin_enabled: bool = False,
    log_level: str = "warning"
) -> SimulationServer:
    """
    Load a fixture file or directory and build a server for it.

    Args:
        path: Fixture file or directory of fixture files
        host: Host to bind to
        port: Port to bind to (0 picks a free port)
        admin_enabled: Expose the admin API
        log_level: Logging level name

    Returns:
        Configured SimulationServer (not started)
    """
    config = ServerConfig(
        host=host,
        port=port,
        admin_enabled=admin_enabled,
        log_level=log_level
    )
    return SimulationServer(SimulationLoader(path).load(), config=config)
