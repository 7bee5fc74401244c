from logging.config import fileConfig
from alembic import context

from config import DATABASE_URL, get_sync_engine
from models import Base


config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

SUPABASE_SCHEMAS = {'auth', 'storage', 'realtime', 'vault', 'supabase_functions', 'extensions', 'graphql', 'graphql_public', 'pgsodium', 'pgsodium_masks'}
SUPABASE_TABLES = {'schema_migrations', 'supabase_migrations'}

def include_object(object, name, type_, reflected, compare_to):
    # auth.users is mirrored in models for foreign keys only; Supabase owns it
    if getattr(object, 'schema', None) in SUPABASE_SCHEMAS:
        return False

    if type_ == "table" and name in SUPABASE_TABLES:
        return False

    return True

def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL environment variable is required for migrations")

    context.configure(
        url=DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    """Run migrations in 'online' mode against the sync engine from config"""
    connectable = get_sync_engine()

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_schemas=True,
            include_object=include_object,
            compare_type=True
        )

        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
