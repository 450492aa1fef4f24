"""Run the bundled Alembic migrations against the store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent


def upgrade_head(engine: Engine) -> None:
    """Bring the schema behind ``engine`` to the latest revision.

    The ``alembic`` command line reads ``[tool.alembic]`` from pyproject.toml; at
    runtime the scripts shipped inside the package are used directly.
    """

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
