#!/usr/bin/env python3
"""
Run the Chart Vision API and the terminal client from one command.

The API is served by uvicorn on a background thread unless one is already
answering on CHART_VISION_HOST:CHART_VISION_PORT.

Usage:
  python3 main.py
"""

from __future__ import annotations

import os
import threading
import time

import httpx
import uvicorn

HOST = os.getenv("CHART_VISION_HOST", "127.0.0.1")
PORT = int(os.getenv("CHART_VISION_PORT", "8000"))
BASE_URL = f"http://{HOST}:{PORT}"

# Both halves read these at import time
os.environ.setdefault("BACKEND_URL", BASE_URL)
os.environ.setdefault("PUBLIC_BASE_URL", BASE_URL)


def _backend_healthy() -> bool:
    try:
        return httpx.get(f"{BASE_URL}/api/health", timeout=1.5).status_code == 200
    except httpx.HTTPError:
        return False


def _wait_until_healthy(timeout_sec: float) -> bool:
    deadline = time.monotonic() + timeout_sec
    while time.monotonic() < deadline:
        if _backend_healthy():
            return True
        time.sleep(0.4)
    return False


class _BackgroundServer:
    def __init__(self):
        config = uvicorn.Config("backend.app:app", host=HOST, port=PORT, log_level="warning")
        self.server = uvicorn.Server(config)
        self.thread = threading.Thread(target=self.server.run, name="chart-vision-api", daemon=True)

    def start(self) -> None:
        self.thread.start()

    def stop(self) -> None:
        self.server.should_exit = True
        self.thread.join(timeout=5)


def main() -> int:
    server: _BackgroundServer | None = None

    if _backend_healthy():
        print(f"[START] Reusing already-running backend on {BASE_URL}.")
    else:
        print(f"[START] Launching backend on {BASE_URL} ...")
        server = _BackgroundServer()
        server.start()
        if not _wait_until_healthy(25):
            print("[ERROR] Backend failed to become healthy in time.")
            server.stop()
            return 1

    from frontend.run import cli

    try:
        cli()
    except KeyboardInterrupt:
        pass
    finally:
        if server is not None:
            server.stop()
            print("[STOP] Backend stopped.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
