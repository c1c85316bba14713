"""Compare the configured database against the couponlot models.

Exit status: 0 when the schema matches, 1 when differences were found, 2 when
the comparison itself failed.
"""

from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from couponlot.db.engine import make_engine
from couponlot.models import Base


def _print_ops(ops, indent: int = 0) -> None:
    for op in ops:
        print(f"{'  ' * indent}- {op}")
        _print_ops(getattr(op, "ops", None) or [], indent + 1)


def main() -> int:
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "compare_server_default": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None:
        print(f"Schema drift check: ERROR for {url_display}: no upgrade ops produced.")
        return 2
    if upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}; run a new migration for:")
    _print_ops(upgrade_ops.ops or [])
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
