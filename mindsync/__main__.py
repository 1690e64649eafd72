"""CLI entry point for mindsync.

Usage:
  python -m mindsync serve [--port PORT] [--host HOST]
  python -m mindsync stop
  python -m mindsync restart [--port PORT] [--host HOST]
  python -m mindsync status
  python -m mindsync check
"""
from __future__ import annotations

import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "check":
        _check()
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, check")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        return False
    finally:
        PID_FILE.unlink(missing_ok=True)


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8000"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting MindSync on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "mindsync.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


def _check():
    """Print the active settings and whether the services host answers."""
    import httpx

    from mindsync.config import CONFIG_PATH, load_settings

    settings = load_settings()
    source = CONFIG_PATH if CONFIG_PATH.exists() else "defaults"
    print(f"Settings ({source})")
    print("=" * 40)
    for k, v in settings.to_dict().items():
        print(f"{k + ':':<22}{v}")
    print()
    try:
        resp = httpx.get(settings.services_url, timeout=5.0)
        print(f"Services reachable ({resp.status_code}) at {settings.services_url}")
    except httpx.HTTPError as e:
        print(f"Services unreachable at {settings.services_url}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
