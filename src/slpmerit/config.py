"""
Configuration for merit calculation.

MeritConfig is passed explicitly into each component; Settings reads the
environment (and an optional .env file) and produces one.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from slpmerit.constants import PSF_TOKEN_ID


class MeritConfig(BaseModel):
    """Configuration for the merit calculation components."""

    # Run the ancestry walk and multiply quantity by age. When disabled, merit
    # is plain quantity and no chain height or history is fetched.
    aging_enabled: bool = True
    # Diagnostic dumps of fetched UTXOs and per-UTXO results, no behavioural effect
    verbose_logging: bool = False

    # Match token UTXOs whose token id merely contains the requested id
    legacy_token_match: bool = False

    # Courtesy throttle between ledger lookups during an ancestry walk
    pacing_delay: float = Field(default=0.0, ge=0.0, description="Seconds between lookups")
    max_hops: int | None = Field(
        default=None, ge=1, description="Abort an ancestry walk after this many parents"
    )
    max_concurrent_walks: int = Field(default=4, ge=1, le=64)

    # Treat a failed ancestry walk as age 0 (with a warning) instead of failing
    tolerate_walk_errors: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # MERIT_AGE=1 / VERBOSE_LOG=1
    merit_age: bool = True
    verbose_log: bool = False

    consumer_api_url: str = "https://free-bch.fullstack.cash"
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 0.5

    token_id: str = PSF_TOKEN_ID
    legacy_token_match: bool = False
    utxo_delay: float = 0.0
    max_hops: int | None = None
    max_concurrent_walks: int = 4
    tolerate_walk_errors: bool = False

    log_level: str = "INFO"

    def to_merit_config(self) -> MeritConfig:
        return MeritConfig(
            aging_enabled=self.merit_age,
            verbose_logging=self.verbose_log,
            legacy_token_match=self.legacy_token_match,
            pacing_delay=self.utxo_delay,
            max_hops=self.max_hops,
            max_concurrent_walks=self.max_concurrent_walks,
            tolerate_walk_errors=self.tolerate_walk_errors,
        )


def get_settings() -> Settings:
    return Settings()
