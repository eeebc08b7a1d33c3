"""Runtime settings: env-driven via pydantic-settings.

Reads from a .env file and BEACONFORGE_* environment variables. Per-network
inputs (chain ids, node counts, scripts) live in ``NetworkPlan`` instead.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class NetworkSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export BEACONFORGE_LOG_LEVEL=DEBUG
        export BEACONFORGE_EXPOSE_PORTS=false
        export BEACONFORGE_DIAL_BATCH_SIZE=10
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BEACONFORGE_",
        env_file_encoding="utf-8",
    )

    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    artifact_store_path: Path = Path(".beaconforge/artifacts")
    ledger_path: Path = Path(".beaconforge/journal.db")

    # Node networking
    expose_ports: bool = True
    p2p_port: int = 26656
    rpc_port: int = 26657

    # dial_peers is a GET; the batch size bounds the URL length
    dial_batch_size: int = 20
    http_timeout_seconds: float = 10.0

    executor_timeout_seconds: int = 600


# Module-level singleton: import as `from beaconforge.config import settings`
settings = NetworkSettings()
