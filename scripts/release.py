"""
Release phase: migrate the schema to head, then seed demo data.

- DATABASE_URL is required (no silent fallback to the local sqlite file).
- ENV=production refuses sqlite outright.
- SEED_DEMO_DATA=0 skips the seed; the seed itself never overwrites rows.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def migrate(db_url: str) -> None:
    print("Upgrading schema to head...", flush=True)
    command.upgrade(alembic_config(db_url), "head")


def seed(db_url: str) -> None:
    if (os.environ.get("SEED_DEMO_DATA") or "1").strip() == "0":
        print("SEED_DEMO_DATA=0, not seeding.", flush=True)
        return
    from scripts import init_db

    created = init_db.seed_only(database_url=db_url)
    print("Seeded: " + ", ".join(f"{n} {kind}" for kind, n in created.items()), flush=True)


def run_release() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL must be set for the release phase.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release against sqlite with ENV=production.")

    print(f"=== DashFlow release (ENV={env or 'unset'}) ===", flush=True)
    migrate(db_url)
    seed(db_url)
    print("=== DashFlow release done ===", flush=True)


if __name__ == "__main__":
    run_release()
