"""Environment settings."""

import os
from typing import Dict, Optional


class Settings:
    """Exporter settings read from environment variables."""

    # ExporterConfig field -> environment variable
    ENV_VARS = {
        "listen_address": "X509_WATCH_LISTEN",
        "cert_file": "X509_WATCH_CERT_FILE",
        "cert_dir": "X509_WATCH_CERT_DIR",
        "interval": "X509_WATCH_INTERVAL",
        "log_level": "X509_WATCH_LOG_LEVEL",
        "log_format": "X509_WATCH_LOG_FORMAT",
        "per_cert_metrics": "X509_WATCH_PER_CERT_METRICS",
    }

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            str: Environment variable value
        """
        return os.getenv(key, default) or ""

    @classmethod
    def from_env(cls) -> Dict[str, str]:
        """
        Collect configuration values set in the environment.

        Returns:
            Dict[str, str]: Config field name to raw value, unset or empty variables omitted
        """
        values = {}
        for field_name, env_var in cls.ENV_VARS.items():
            value = cls.get(env_var)
            if value:
                values[field_name] = value
        return values
