from core.config import Settings


def test_database_uri_falls_back_to_sqlite():
    config = Settings(_env_file=None, POSTGRES_SERVER=None, SQLITE_PATH="/tmp/ledger.db")
    assert config.SQLALCHEMY_DATABASE_URI == "sqlite:////tmp/ledger.db"


def test_database_uri_built_from_postgres_settings():
    config = Settings(
        _env_file=None,
        POSTGRES_SERVER="db",
        POSTGRES_USER="ledger",
        POSTGRES_PASSWORD="secret",
        POSTGRES_DB="vaults",
    )
    uri = config.SQLALCHEMY_DATABASE_URI
    assert uri.startswith("postgresql+psycopg://ledger:secret@db")
    assert uri.endswith("/vaults")


def test_explicit_database_uri_wins():
    config = Settings(
        _env_file=None,
        ENVIRONMENT_NAME="Production",
        POSTGRES_SERVER="db",
        SQLALCHEMY_DATABASE_URI="sqlite://",
    )
    assert config.SQLALCHEMY_DATABASE_URI == "sqlite://"
    assert config.is_production
