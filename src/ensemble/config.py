import os
from pathlib import Path
from typing import Literal

from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    PyprojectTomlConfigSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_dirs = PlatformDirs("ensemble", "ensemble")
LOG_LEVELS = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

POA_CHAIN_IDS = (137, 80001)
"""Chains that need the proof-of-authority extra-data middleware (Polygon mainnet/testnet)"""


class LogConfig(BaseModel):
    """
    Configuration for logging
    """

    model_config = SettingsConfigDict(validate_default=True)

    level: LOG_LEVELS = "INFO"
    """
    Severity of log messages to process.
    """
    level_file: LOG_LEVELS | None = None
    """
    Severity for file-based logging. If unset, use ``level``
    """
    level_stdout: LOG_LEVELS | None = None
    """
    Severity for stream-based logging. If unset, use ``level``
    """
    dir: Path | Literal[False] = Path(_dirs.user_log_dir)
    """
    Directory where logs are stored.
    """
    file_n: int = 5
    """
    Number of log files to rotate through
    """
    file_size: int = 2**22  # roughly 4MB
    """
    Maximum size of log files (bytes)
    """
    width: int | None = None
    """
    Explicitly set width of rich stdout logs, leave as None for auto detection.
    """

    @field_validator("level", "level_file", "level_stdout", mode="before")
    @classmethod
    def uppercase_levels(cls, value: str | None = None) -> str | None:
        """
        Ensure log level strings are uppercased
        """
        if value is not None:
            value = value.upper()
        return value

    @field_validator("dir", mode="after")
    def create_dir(cls, value: Path | Literal[False]) -> Path | Literal[False]:
        if os.environ.get("READTHEDOCS", False) or value is False:
            return value
        value.mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("dir", mode="after")
    def no_file_on_rtd(cls, value: Path | Literal[False]) -> Path | Literal[False]:
        """On readthedocs, don't log to file"""
        if os.environ.get("READTHEDOCS", False):
            return False
        return value


class NetworkConfig(BaseModel):
    """
    The chain the registries are deployed on
    """

    rpc_url: str = "http://127.0.0.1:8545"
    """
    HTTP JSON-RPC endpoint of the node
    """
    chain_id: int = 31337
    """
    Chain id used when signing transactions locally
    """
    name: str | None = None
    """
    Human-readable network name, only used in logs
    """

    @property
    def is_poa(self) -> bool:
        return self.chain_id in POA_CHAIN_IDS


class ContractAddresses(BaseModel):
    """
    Deployed registry contract addresses.

    All optional so the config can load without them,
    but :meth:`.Ensemble.from_config` requires all three.
    """

    task_registry: str | None = None
    agent_registry: str | None = None
    service_registry: str | None = None


class QueueConfig(BaseModel):
    """
    Message queue used to broadcast proposals
    """

    publish_address: str = "tcp://127.0.0.1:5559"
    """
    Address proposal publishers connect to (the broker's frontend)
    """
    subscribe_address: str = "tcp://127.0.0.1:5560"
    """
    Address proposal subscribers connect to (the broker's backend)
    """
    topic: str = "ensemble-tasks"
    """
    Topic proposals are published under
    """
    broker_frontend: str = "tcp://*:5559"
    """
    Bind address for the broker's XSUB socket
    """
    broker_backend: str = "tcp://*:5560"
    """
    Bind address for the broker's XPUB socket
    """
    ready_timeout: float = Field(default=2.0, ge=0)
    """
    Seconds a new publisher waits for a subscription to its topic before its first send
    """


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ensemble_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
        yaml_file="ensemble_config.yaml",
        pyproject_toml_table_header=("tool", "ensemble", "config"),
        validate_default=True,
    )

    logs: LogConfig = LogConfig()
    network: NetworkConfig = NetworkConfig()
    contracts: ContractAddresses = ContractAddresses()
    queue: QueueConfig = QueueConfig()
    private_key: SecretStr | None = None
    """
    Key used to sign transactions locally.
    If unset, transactions are sent from the node's unlocked account.
    """
    poll_interval: float = Field(default=2.0, gt=0)
    """
    Seconds between polls for new contract events
    """
    receipt_timeout: float = Field(default=120.0, gt=0)
    """
    Seconds to wait for a transaction receipt
    """
    gas_price_gwei: float | None = None
    """
    Fixed gas price for locally signed transactions. If unset, ask the node.
    """
    user_dir: Path = Field(default=Path(_dirs.user_data_dir))
    config_dir: Path = Field(
        default=Path(_dirs.user_data_dir) / "config",
        description="Directory where config yaml files are stored",
    )

    @field_validator("user_dir", "config_dir", mode="after")
    def create_dir(cls, value: Path) -> Path:
        if os.environ.get("READTHEDOCS", False):
            return value
        value.mkdir(parents=True, exist_ok=True)
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Read config settings from, in order of priority from high to low, where
        high priorities override lower priorities:

        * in the arguments passed to the class constructor (not user configurable)
        * in environment variables like ``export ENSEMBLE_NETWORK__RPC_URL=http://...``
        * in a ``.env`` file in the working directory
        * in a ``ensemble_config.yaml`` file in the working directory
        * in the ``tool.ensemble.config`` table in a ``pyproject.toml`` file
          in the working directory
        * the default values in the :class:`.Config` model

        """

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            PyprojectTomlConfigSettingsSource(settings_cls),
        )


config = Config()
