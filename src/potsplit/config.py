"""Configuration management for potsplit."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .balance import parse_shared_parties
from .exceptions import ConfigurationError
from .models import SharedParty


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="POTSPLIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Account whose ledger commands operate on
    account_name: str | None = None

    # Shared-cost split, "Name:ratio" pairs summing to 1
    shared_parties: str = "Robena:2/3,Patricia:1/3"

    # Display settings
    currency_symbol: str = "€"
    export_prefix: str = "tarifa"  # Base name for exported CSV files

    # Database path
    database_path: Path = Path.home() / ".potsplit" / "potsplit.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    def parties(self) -> tuple[SharedParty, ...]:
        """Parsed and validated shared-cost parties."""
        return parse_shared_parties(self.shared_parties)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        settings = Settings()
        settings.parties()
        return settings
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your POTSPLIT_* environment "
            f"variables or .env file.\n"
            f"Error: {e}"
        ) from e
