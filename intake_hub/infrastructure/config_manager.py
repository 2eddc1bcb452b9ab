"""Configuration Manager for Store Selection and Credential Handling.

This module loads the record store configuration (which backend to use, where
the JSON file lives, how to reach PostgreSQL) from environment variables or a
JSON file into a validated Pydantic model.

Security Impact:
    - Passwords and connection strings are held as SecretStr
    - Credentials are never logged or included in error messages
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, quote_plus, unquote, urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("file", "postgresql")


class StoreConfig(BaseModel):
    """Record store configuration model.

    Parameters:
        backend: Storage backend ('file' or 'postgresql')
        data_file: Path to the JSON data file (file backend)
        atomic_writes: Write to a temporary file and rename instead of
            overwriting in place (file backend)
        error_log_path: Path of the append-only storage failure log
        host: Database host
        port: Database port
        database: Database name
        username: Database username
        password: Database password (SecretStr - never logged)
        connection_string: Full connection string (SecretStr - never logged)
        ssl_mode: SSL mode (require, prefer, disable)
        table_name: Table holding patient documents
        pool_size: Maximum pooled connections
    """

    backend: str = Field(default="file", description="Storage backend (file, postgresql)")
    data_file: str = Field(default="data/patients.json", description="JSON data file path")
    atomic_writes: bool = Field(default=False, description="Use temp-file + rename for rewrites")
    error_log_path: str = Field(default="logs/error.log", description="Storage failure log path")
    host: Optional[str] = Field(None, description="Database host")
    port: Optional[int] = Field(None, description="Database port")
    database: Optional[str] = Field(None, description="Database name")
    username: Optional[str] = Field(None, description="Database username")
    password: Optional[SecretStr] = Field(None, description="Database password (secret)")
    connection_string: Optional[SecretStr] = Field(None, description="Full connection string (secret)")
    ssl_mode: Optional[str] = Field(None, description="SSL mode (require, prefer, disable)")
    table_name: str = Field(default="patient_documents", description="Patient document table")
    pool_size: int = Field(default=5, ge=1, description="Connection pool size")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend name."""
        if v.lower() not in SUPPORTED_BACKENDS:
            raise ValueError(f"Unsupported store backend: {v}. Supported: {list(SUPPORTED_BACKENDS)}")
        return v.lower()

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Table names are interpolated as identifiers, keep them plain."""
        if not v.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {v}")
        return v

    @model_validator(mode="after")
    def parse_connection_string(self) -> "StoreConfig":
        """Populate host/port/database/username from the connection string.

        The connection string always takes precedence over individual fields.
        """
        if self.backend != "postgresql" or not self.connection_string:
            return self

        parsed = urlparse(self.connection_string.get_secret_value())
        if parsed.scheme not in ("postgresql", "postgres"):
            logger.warning(f"Unrecognized connection string scheme '{parsed.scheme}', using as-is")
            return self

        if parsed.hostname:
            self.host = parsed.hostname
        if parsed.port:
            self.port = parsed.port
        if parsed.path and parsed.path.lstrip("/"):
            self.database = parsed.path.lstrip("/")
        if parsed.username:
            self.username = unquote(parsed.username)
        if parsed.password:
            self.password = SecretStr(unquote(parsed.password))
        query_params = parse_qs(parsed.query)
        if "sslmode" in query_params:
            self.ssl_mode = query_params["sslmode"][0]
        return self

    def get_connection_string(self) -> str:
        """Get the PostgreSQL connection string.

        Raises:
            ValueError: If the backend is not PostgreSQL or host/database are missing
        """
        if self.backend != "postgresql":
            raise ValueError(f"Backend '{self.backend}' does not use a connection string")
        if self.connection_string:
            return self.connection_string.get_secret_value()
        if not all([self.host, self.database]):
            raise ValueError("postgresql requires host and database")

        password_part = ""
        if self.password:
            password_part = f":{quote_plus(self.password.get_secret_value())}"
        username_part = quote_plus(self.username) if self.username else ""
        ssl_part = f"?sslmode={self.ssl_mode}" if self.ssl_mode else ""
        return (
            f"postgresql://{username_part}{password_part}@{self.host}:{self.port or 5432}"
            f"/{self.database}{ssl_part}"
        )


class ConfigManager:
    """Configuration loader for the record store.

    Example Usage:
        ```python
        config = ConfigManager.from_environment()
        store_config = config.get_store_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        self._config_data = config_data
        self._store_config: Optional[StoreConfig] = None

    @classmethod
    def from_environment(cls, env_file: Optional[Path] = None) -> "ConfigManager":
        """Load configuration from environment variables.

        Environment Variables:
            - IH_STORE_BACKEND: 'file' or 'postgresql'
            - IH_DATA_FILE: JSON data file path
            - IH_ATOMIC_WRITES: 'true' to enable temp-file + rename
            - IH_ERROR_LOG: storage failure log path
            - IH_DB_HOST / IH_DB_PORT / IH_DB_NAME / IH_DB_USER
            - IH_DB_PASSWORD: Database password (secret)
            - IH_DB_CONNECTION_STRING: Full connection string (secret)
            - IH_DB_SSL_MODE / IH_DB_TABLE / IH_DB_POOL_SIZE

        A ``.env`` file in the working directory (or env_file) is loaded first
        without overriding variables already set.
        """
        env_path = env_file or Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        config_data = {
            "store": {
                "backend": os.getenv("IH_STORE_BACKEND", "file"),
                "data_file": os.getenv("IH_DATA_FILE", "data/patients.json"),
                "atomic_writes": os.getenv("IH_ATOMIC_WRITES", "false").lower() == "true",
                "error_log_path": os.getenv("IH_ERROR_LOG", "logs/error.log"),
                "host": os.getenv("IH_DB_HOST"),
                "port": int(os.getenv("IH_DB_PORT")) if os.getenv("IH_DB_PORT") else None,
                "database": os.getenv("IH_DB_NAME"),
                "username": os.getenv("IH_DB_USER"),
                "password": os.getenv("IH_DB_PASSWORD"),
                "connection_string": os.getenv("IH_DB_CONNECTION_STRING"),
                "ssl_mode": os.getenv("IH_DB_SSL_MODE"),
                "table_name": os.getenv("IH_DB_TABLE", "patient_documents"),
                "pool_size": int(os.getenv("IH_DB_POOL_SIZE", "5")),
            }
        }
        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> "ConfigManager":
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not valid JSON
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        stat_info = config_file.stat()
        if stat_info.st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600 for credential files."
            )

        try:
            with open(config_file, "r") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        return cls(config_data)

    def get_store_config(self) -> StoreConfig:
        """Get the validated store configuration (cached)."""
        if self._store_config is None:
            store_data = {
                key: value for key, value in self._config_data.get("store", {}).items()
                if value is not None
            }
            self._store_config = StoreConfig(**store_data)
        return self._store_config


def get_store_config() -> StoreConfig:
    """Get the store configuration for this process.

    If IH_CONFIG_FILE names a JSON configuration file it is used; otherwise
    the configuration comes from IH_* environment variables.
    """
    config_file = os.getenv("IH_CONFIG_FILE")
    if config_file:
        return ConfigManager.from_file(config_file).get_store_config()
    return ConfigManager.from_environment().get_store_config()
