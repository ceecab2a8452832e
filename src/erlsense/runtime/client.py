"""Runtime client for introspection calls.

Communicates with a bridge process attached to the Erlang runtime via
JSON-RPC over stdio. Every introspection call is a ``call`` request naming
the node, module, function and arguments to apply; the bridge converts
string arguments to atoms and returns the result as JSON (tuples and lists
as arrays, atoms and binaries as strings, maps as objects).

Law compliance:
- L-fallback-graceful: Transport failures and timeouts surface as CallError
- L-batch-efficiency: One bridge process is reused for all calls
"""

from __future__ import annotations

import json
import logging
import queue
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Protocol

from erlsense.core.exceptions import CallError
from erlsense.core.types import RuntimeTarget

logger = logging.getLogger(__name__)

# Reader thread marker for a closed stdout
_EOF = object()


class RuntimeClient(Protocol):
    """Applies a function on a runtime target."""

    def call(
        self, target: RuntimeTarget, module: str, function: str, args: list[Any]
    ) -> Any:
        """Apply ``module:function(args)`` on ``target``.

        Raises:
            CallError: If the call could not be made or raised on the runtime
        """
        ...


def encode_message(message: dict[str, Any]) -> bytes:
    """Frame a JSON-RPC message with a Content-Length header."""
    content = json.dumps(message).encode("utf-8")
    header = f"Content-Length: {len(content)}\r\n\r\n".encode("ascii")
    return header + content


def read_message(stream: IO[bytes]) -> dict[str, Any] | None:
    """Read one framed JSON-RPC message, or None at end of stream."""
    while True:
        headers = {}
        while True:
            line = stream.readline()
            if not line:
                return None
            line = line.decode("ascii", errors="replace").strip()
            if not line:
                break
            if ":" in line:
                key, value = line.split(":", 1)
                headers[key.strip().lower()] = value.strip()

        # Header names are case-insensitive
        if "content-length" not in headers:
            continue

        content_length = int(headers["content-length"])
        content = stream.read(content_length)
        if len(content) < content_length:
            return None

        try:
            return json.loads(content.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON message from bridge: {e}")


@dataclass
class BridgeClient:
    """JSON-RPC client for an introspection bridge process.

    Usage:
        with BridgeClient(["erlsense-bridge"]) as client:
            modules = client.call(RuntimeTarget.local(), "erlang", "loaded", [])

    Requests are serialised: the bridge answers one call at a time, and a
    response that arrives after its request timed out is dropped.
    """

    command: list[str]
    timeout_seconds: float = 5.0
    cwd: Path | None = None

    _process: subprocess.Popen | None = field(default=None, init=False, repr=False)
    _request_id: int = field(default=0, init=False, repr=False)
    _responses: queue.Queue = field(default_factory=queue.Queue, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _reader: threading.Thread | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> BridgeClient:
        """Start the bridge and initialize the connection."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Shutdown the bridge."""
        self.stop()

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        """Start the bridge process."""
        if self._process is not None:
            return

        logger.info(f"Starting runtime bridge: {' '.join(self.command)}")

        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"Bridge command not available: {self.command[0]}")
            raise CallError(f"Runtime bridge not available: {self.command[0]}") from e

        self._responses = queue.Queue()
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(self._process.stdout,),
            name="erlsense-bridge-reader",
            daemon=True,
        )
        self._reader.start()

        try:
            result = self._send_request("initialize", {"client": "erlsense"})
        except CallError:
            self.stop()
            raise
        info = result.get("serverInfo", {}) if isinstance(result, dict) else {}
        logger.debug(f"Bridge initialized: {info}")

    def stop(self) -> None:
        """Stop the bridge process."""
        if self._process is None:
            return

        try:
            self._send_request("shutdown", {})
            self._send_notification("exit", {})
        except (CallError, OSError) as e:
            logger.warning(f"Error during bridge shutdown: {e}")
        finally:
            self._process.terminate()
            try:
                self._process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._process.kill()
            self._process = None
            self._reader = None

    def call(
        self, target: RuntimeTarget, module: str, function: str, args: list[Any]
    ) -> Any:
        """Apply ``module:function(args)`` on ``target`` through the bridge."""
        params = {
            "node": target.node,
            "module": module,
            "function": function,
            "args": list(args),
        }
        mfa = (module, function, len(args))

        try:
            return self._send_request("call", params)
        except CallError as e:
            raise CallError(e.message, target=target, mfa=mfa) from e

    def _read_loop(self, stream: IO[bytes]) -> None:
        try:
            while (message := read_message(stream)) is not None:
                if "id" in message:
                    self._responses.put(message)
                elif "method" in message:
                    logger.debug(f"Bridge notification: {message['method']}")
        except (OSError, ValueError) as e:
            logger.warning(f"Bridge stream failed: {e}")
        finally:
            self._responses.put(_EOF)

    def _write(self, message: dict[str, Any]) -> None:
        if self._process is None or self._process.stdin is None:
            raise CallError("Runtime bridge not running")
        try:
            self._process.stdin.write(encode_message(message))
            self._process.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            raise CallError(f"Runtime bridge unavailable: {e}") from e

    def _send_notification(self, method: str, params: dict[str, Any]) -> None:
        """Send a JSON-RPC notification (no response expected)."""
        self._write({"jsonrpc": "2.0", "method": method, "params": params})

    def _send_request(self, method: str, params: dict[str, Any]) -> Any:
        """Send a JSON-RPC request and wait for its response."""
        with self._lock:
            self._request_id += 1
            request_id = self._request_id

            self._write({
                "jsonrpc": "2.0",
                "id": request_id,
                "method": method,
                "params": params,
            })

            deadline = time.monotonic() + self.timeout_seconds
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise CallError(f"Bridge request timed out: {method}")
                try:
                    response = self._responses.get(timeout=remaining)
                except queue.Empty:
                    raise CallError(f"Bridge request timed out: {method}") from None

                if response is _EOF:
                    # Keep the marker for any later request
                    self._responses.put(_EOF)
                    raise CallError("Runtime bridge exited")

                if response.get("id") != request_id:
                    logger.debug(f"Dropping stale bridge response {response.get('id')}")
                    continue

                if "error" in response:
                    error = response["error"] or {}
                    raise CallError(
                        f"Bridge error {error.get('code')}: {error.get('message')}"
                    )
                return response.get("result")
