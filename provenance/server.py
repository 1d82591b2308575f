# provenance/server.py
"""
HTTP server for the provenance registry.

Endpoints:
    POST /assets                   - Register an asset
    GET  /assets/:id               - Get an asset
    GET  /creators/:id/assets      - Get the assets a holder holds
    POST /assets/:id/transfer      - Transfer an asset
    PUT  /assets/:id/metadata      - Merge into an asset's metadata
    POST /assets/:id/revoke        - Revoke an asset
    GET  /health                   - Liveness

Callers are authenticated upstream; transfer, metadata and revoke
requests name the caller in the X-Caller-Id header.
"""

import json
import logging
import re
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

from .errors import RegistryError, ValidationError
from .registry import RegistryService

logger = logging.getLogger(__name__)

CALLER_HEADER = "X-Caller-Id"

_ASSET = re.compile(r"^/assets/([^/]+)$")
_ASSET_ACTION = re.compile(r"^/assets/([^/]+)/(transfer|metadata|revoke)$")
_CREATOR_ASSETS = re.compile(r"^/creators/([^/]+)/assets$")


class _BadRequest(Exception):
    def __init__(self, message: str, status: int = 400):
        self.status = status
        super().__init__(message)


class RegistryServer:
    """
    HTTP front end of a RegistryService.

    Usage:
        server = RegistryServer(RegistryService.open("/data/reg"), port=8080)
        server.start()  # Blocking
    """

    def __init__(self, registry: RegistryService, host: str = "127.0.0.1", port: int = 8080):
        self.registry = registry
        self.host = host
        self.port = port
        self._httpd: Optional[ThreadingHTTPServer] = None

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_json(self, data: Any, status: int = 200):
                body = json.dumps(data).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_error(self, message: str, status: int = 400, **extra: Any):
                self._send_json({"error": message, **extra}, status)

            def _read_json(self) -> Dict[str, Any]:
                try:
                    content_length = int(self.headers.get("Content-Length", 0))
                except ValueError:
                    raise _BadRequest("Invalid Content-Length header")
                if content_length < 0:
                    raise _BadRequest("Invalid Content-Length header")
                if content_length == 0:
                    return {}
                try:
                    body = self.rfile.read(content_length).decode()
                except UnicodeDecodeError:
                    raise _BadRequest("Request body must be UTF-8")
                try:
                    data = json.loads(body)
                except json.JSONDecodeError as e:
                    raise _BadRequest(f"Invalid JSON: {e}")
                if not isinstance(data, dict):
                    raise _BadRequest("Request body must be a JSON object")
                return data

            def _caller(self) -> str:
                caller_id = self.headers.get(CALLER_HEADER)
                if not caller_id:
                    raise _BadRequest(f"Missing {CALLER_HEADER} header", 401)
                return caller_id

            def _dispatch(self, handler):
                try:
                    handler()
                except RegistryError as e:
                    extra = {"type": type(e).__name__}
                    if isinstance(e, ValidationError):
                        extra["errors"] = e.errors
                    self._send_error(str(e), e.status_code, **extra)
                except _BadRequest as e:
                    self._send_error(str(e), e.status)
                except Exception as e:
                    logger.exception(f"{self.command} {self.path} failed")
                    self._send_error(str(e), 500)

            def do_GET(self):
                self._dispatch(self._get)

            def do_POST(self):
                self._dispatch(self._post)

            def do_PUT(self):
                self._dispatch(self._put)

            def _get(self):
                path = urlparse(self.path).path
                registry = self.server_ref.registry

                if path == "/health":
                    self._send_json({"status": "ok"})
                    return

                match = _ASSET.match(path)
                if match:
                    asset = registry.get_asset(unquote(match.group(1)))
                    self._send_json(asset.to_dict())
                    return

                match = _CREATOR_ASSETS.match(path)
                if match:
                    assets = registry.get_creator_assets(unquote(match.group(1)))
                    self._send_json([a.to_dict() for a in assets])
                    return

                self._send_error("Not found", 404)

            def _post(self):
                path = urlparse(self.path).path
                registry = self.server_ref.registry

                if path == "/assets":
                    data = self._read_json()
                    asset = registry.register(
                        title=data.get("title"),
                        description=data.get("description", ""),
                        asset_type=data.get("asset_type"),
                        creator_id=data.get("creator_id"),
                        content_hash=data.get("content_hash"),
                        metadata=data.get("metadata"),
                    )
                    self._send_json(asset.to_dict(), 201)
                    return

                match = _ASSET_ACTION.match(path)
                if match and match.group(2) == "transfer":
                    caller_id = self._caller()
                    data = self._read_json()
                    asset = registry.transfer_asset(
                        unquote(match.group(1)),
                        caller_id,
                        data.get("to_id"),
                        data.get("transfer_type"),
                    )
                    self._send_json(asset.to_dict())
                    return

                if match and match.group(2) == "revoke":
                    asset = registry.revoke_asset(unquote(match.group(1)), self._caller())
                    self._send_json(asset.to_dict())
                    return

                self._send_error("Not found", 404)

            def _put(self):
                path = urlparse(self.path).path
                match = _ASSET_ACTION.match(path)
                if match and match.group(2) == "metadata":
                    caller_id = self._caller()
                    asset = self.server_ref.registry.update_metadata(
                        unquote(match.group(1)), caller_id, self._read_json()
                    )
                    self._send_json(asset.to_dict())
                    return

                self._send_error("Not found", 404)

        return RequestHandler

    def _bind(self) -> ThreadingHTTPServer:
        if self._httpd is None:
            self._httpd = ThreadingHTTPServer((self.host, self.port), self._create_handler())
            self._httpd.daemon_threads = True
            # Port 0 asks the OS for a free port
            self.port = self._httpd.server_address[1]
        return self._httpd

    def start(self):
        """Start the HTTP server (blocking)."""
        httpd = self._bind()
        logger.info(f"Registry server starting on {self.host}:{self.port}")
        print(f"Registry server running on http://{self.host}:{self.port}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nShutting down...")
        finally:
            httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread."""
        self._bind()
        thread = threading.Thread(target=self.start)
        thread.daemon = True
        thread.start()
        return thread

    def shutdown(self):
        """Stop a running server."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd = None
