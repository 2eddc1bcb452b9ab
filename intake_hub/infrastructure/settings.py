"""Application Settings and Configuration.

This module provides application-wide settings (logging, bind address, CORS,
real-time relay buffering) read from the environment. Store selection lives
in the configuration manager.
"""

import os

APP_NAME = "Intake-Hub"

# Outbound messages buffered per WebSocket connection
DEFAULT_WS_QUEUE_SIZE = 100

OVERFLOW_POLICIES = ("drop", "disconnect")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.app_name = os.getenv("IH_APP_NAME", APP_NAME)
        self.log_level = os.getenv("IH_LOG_LEVEL", "INFO")
        self.json_logs = os.getenv("IH_JSON_LOGS", "false").lower() == "true"

        self.host = os.getenv("IH_HOST", "0.0.0.0")
        self.port = int(os.getenv("IH_PORT", "5000"))
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("IH_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        self.ws_queue_size = int(os.getenv("IH_WS_QUEUE_SIZE", str(DEFAULT_WS_QUEUE_SIZE)))
        self.ws_overflow_policy = os.getenv("IH_WS_OVERFLOW_POLICY", "drop").lower()
        if self.ws_overflow_policy not in OVERFLOW_POLICIES:
            raise ValueError(
                f"Unsupported overflow policy: {self.ws_overflow_policy}. "
                f"Supported: {list(OVERFLOW_POLICIES)}"
            )


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
