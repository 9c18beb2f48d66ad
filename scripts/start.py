#!/usr/bin/env python3
"""
Production entrypoint: release phase (migrations + demo seed), then gunicorn.

Environment:
    PORT              bind port (default 8080)
    WEB_CONCURRENCY   gunicorn workers (default 2)
    GUNICORN_TIMEOUT  worker timeout in seconds (default 60)

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _int_env(name: str, default: int, *, low: int = 1, high: int | None = None) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise SystemExit(f"ERROR: {name}={raw!r} is not an integer.") from None
    if value < low or (high is not None and value > high):
        raise SystemExit(f"ERROR: {name}={value} is out of range.")
    return value


def gunicorn_argv(port: int, workers: int, timeout: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", str(timeout),
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = _int_env("PORT", 8080, high=65535)
    workers = _int_env("WEB_CONCURRENCY", 2)
    timeout = _int_env("GUNICORN_TIMEOUT", 60)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    argv = gunicorn_argv(port, workers, timeout)
    print(f"=== exec {' '.join(argv)} ===", flush=True)
    # Replace this process so gunicorn receives container signals directly.
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
