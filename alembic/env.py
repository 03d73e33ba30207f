import os
from logging.config import fileConfig

from sqlalchemy import create_engine
from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# An explicit url on the config wins (tests), then DATABASE_URL, then alembic.ini
db_url = (
    config.attributes.get("database_url")
    or os.getenv('DATABASE_URL')
    or config.get_main_option('sqlalchemy.url')
)


def run_migrations_offline():
    context.configure(url=db_url, target_metadata=None, literal_binds=True,
                      render_as_batch=db_url.startswith("sqlite"))
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(db_url)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=None,
                          render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
