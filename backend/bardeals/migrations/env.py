from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from bardeals.config import load_settings
from bardeals.db import normalize_db_url
from bardeals.models import Base  # registers the events table on Base.metadata

# Alembic config object
config = context.config

# run_migrations() sets the URL explicitly; the alembic CLI falls back to DATABASE_URL
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", normalize_db_url(load_settings().database_url))

# Setup logging without muting loggers the app already configured
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Assign metadata for autogenerate support
target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to):
    # PostGIS owns spatial_ref_sys and friends
    return not (type_ == "table" and reflected and compare_to is None)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
