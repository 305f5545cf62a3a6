"""Configuration management for loan-ledger."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from loan_ledger.exceptions import ConfigurationError
from loan_ledger.logging import LOG_FORMATS

STORE_BACKENDS = ("memory", "postgres")


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "ledger"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class ReportConfig:
    """Client history report configuration."""

    brand: str = "SharkPro"
    output_dir: Path = field(default_factory=lambda: Path("reports"))
    locale: str = "pt_BR"


@dataclass
class LedgerConfig:
    """Main configuration for loan-ledger."""

    store: str = "memory"
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    def __post_init__(self) -> None:
        if self.store not in STORE_BACKENDS:
            raise ConfigurationError(
                f"Unknown store backend {self.store!r}, expected one of {', '.join(STORE_BACKENDS)}"
            )
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Unknown log format {self.log_format!r}, expected one of {', '.join(LOG_FORMATS)}"
            )

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_int_env("POSTGRES_PORT", "5432"),
            database=os.getenv("POSTGRES_DB", "ledger"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        report = ReportConfig(
            brand=os.getenv("REPORT_BRAND", "SharkPro"),
            output_dir=Path(os.getenv("REPORT_OUTPUT_DIR", "reports")),
            locale=os.getenv("REPORT_LOCALE", "pt_BR"),
        )

        return cls(
            store=os.getenv("LEDGER_STORE", "memory").lower(),
            postgres=postgres,
            report=report,
            seed=_int_env("SEED", None),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard").lower(),
        )


def _int_env(name: str, default: str | None) -> int | None:
    raw = os.getenv(name, default)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
