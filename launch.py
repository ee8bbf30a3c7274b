#!/usr/bin/env python3
"""Media server launcher.

Starts gunicorn serving ``media_server:create_app()`` and waits until it
answers before reporting the URL.
"""

import os
import signal
import socket
import subprocess
import sys
import time
import urllib.error
import urllib.request

# ── Configuration ────────────────────────────────────────────
PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
HOST = os.environ.get("MEDIA_HOST", "0.0.0.0")
PORT = int(os.environ.get("MEDIA_PORT", "5000"))
WORKERS = int(os.environ.get("MEDIA_WORKERS", "4"))
HEALTH_URL = f"http://127.0.0.1:{PORT}/api/auth"
PID_FILE = os.path.join(PROJECT_DIR, ".gunicorn.pid")

gunicorn_proc: subprocess.Popen | None = None


def log(msg: str) -> None:
    print(f"[media-server] {msg}", flush=True)


def port_in_use(port: int) -> bool:
    """Check if a port is already in use."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(("127.0.0.1", port)) == 0


def wait_for_server(timeout: int = 15) -> bool:
    """Poll the server until it answers (any HTTP status) or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            urllib.request.urlopen(HEALTH_URL, timeout=1)
            return True
        except urllib.error.HTTPError:
            # 405 on GET still means the app is serving
            return True
        except OSError:
            pass
        if gunicorn_proc and gunicorn_proc.poll() is not None:
            return False
        time.sleep(0.5)
    return False


def shutdown(_signum: int = 0, _frame: object = None) -> None:
    """Gracefully stop gunicorn."""
    print()
    log("Shutting down...")
    if gunicorn_proc and gunicorn_proc.poll() is None:
        gunicorn_proc.terminate()
        try:
            gunicorn_proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            gunicorn_proc.kill()
    if os.path.exists(PID_FILE):
        os.remove(PID_FILE)
    log("Stopped.")
    sys.exit(0)


def main() -> None:
    global gunicorn_proc

    if port_in_use(PORT):
        log(f"Port {PORT} is already in use; is the server already running?")
        sys.exit(1)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    log(f"Starting media server (gunicorn on {HOST}:{PORT}, {WORKERS} workers)...")

    # Uploads of large videos can take minutes; keep workers alive for them
    gunicorn_proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "gunicorn",
            "--bind",
            f"{HOST}:{PORT}",
            "--workers",
            str(WORKERS),
            "--timeout",
            "600",
            "--pid",
            PID_FILE,
            "--access-logfile",
            "-",
            "--error-logfile",
            "-",
            "media_server:create_app()",
        ],
        cwd=PROJECT_DIR,
    )

    log("Waiting for server...")
    if not wait_for_server():
        log("Server did not start. Check output above.")
        sys.exit(1)

    log(f"Media server is running at: http://127.0.0.1:{PORT}")
    log("Press Ctrl+C to stop the server.")

    try:
        gunicorn_proc.wait()
    except KeyboardInterrupt:
        shutdown()


if __name__ == "__main__":
    main()
