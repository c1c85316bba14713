from __future__ import annotations

import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from couponlot.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def alembic_config() -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def upgrade_db(target_revision: str = "head") -> None:
    """Apply migrations up to ``target_revision``."""
    command.upgrade(alembic_config(), target_revision)


def print_tables() -> None:
    """Print the tables present in the configured database."""
    engine = make_engine()
    try:
        names = sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    print("Current tables:", ", ".join(names) or "(none)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or upgrade the coupon database.")
    parser.add_argument("revision", nargs="?", default="head")
    args = parser.parse_args()
    upgrade_db(args.revision)
    print_tables()


if __name__ == "__main__":
    main()
