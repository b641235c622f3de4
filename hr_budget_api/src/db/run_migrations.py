"""
Programmatic Alembic migration runner.

Allows running migrations without an alembic.ini by configuring the script location
to this package's migrations directory. The database URL comes from
ConnectionStrings.Default (appsettings.json or CONNECTIONSTRINGS__DEFAULT).

Usage examples:
    python -m src.db.run_migrations upgrade head
    python -m src.db.run_migrations downgrade -1
    python -m src.db.run_migrations history
"""

import logging
import sys
from pathlib import Path
from typing import List

from alembic import command
from alembic.config import Config

from src.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def build_config(url: str | None = None) -> Config:
    """Alembic Config pointing at this package's migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # env.py reads the URL back from here so callers can target another database
    cfg.set_main_option("sqlalchemy.url", url or get_settings().database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        logger.error("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    cfg = build_config()
    cmd, other = args[0], args[1:]

    if cmd == "upgrade":
        command.upgrade(cfg, *(other or ["head"]))
    elif cmd == "downgrade":
        command.downgrade(cfg, *(other or ["-1"]))
    elif cmd == "history":
        command.history(cfg, *other)
    elif cmd == "current":
        command.current(cfg, *other)
    elif cmd == "heads":
        command.heads(cfg, *other)
    elif cmd == "show":
        if not other:
            logger.error("Usage: show <revision>")
            sys.exit(2)
        command.show(cfg, other[0])
    else:
        logger.error("Unsupported Alembic command: %s", cmd)
        sys.exit(2)


if __name__ == "__main__":
    from src.core.logging import configure_logging

    configure_logging()
    main()
