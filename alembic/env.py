from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context

from intake_engine.core.config import get_settings
from intake_engine.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Every intake table (departments .. sequence_counters) registers on this metadata.
target_metadata = Base.metadata


def get_url() -> str:
    """
    Database URL for this run.

    ``alembic -x url=sqlite:///local.db upgrade head`` overrides DATABASE_URL,
    which is handy for migrating a scratch SQLite file.
    """
    return context.get_x_argument(as_dictionary=True).get("url") or get_settings().database_url


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite cannot ALTER constraints in place (beds occupant check).
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit SQL to the script output instead of running it."""
    url = get_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    connectable = create_engine(url, future=True, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
