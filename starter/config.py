"""
OAP Bootstrap - Starter Configuration

Process-level settings of the server starter. Uses environment variables
(optionally from a ``.env`` file) with sensible defaults. Module settings live
in the application configuration file, not here.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from module_library.catalog import MODULE_ENTRY_POINT_GROUP, PROVIDER_ENTRY_POINT_GROUP
from observability.logging import LoggingConfig
from observability.tracing import TracingConfig

# Load environment variables from .env file
load_dotenv()


@dataclass
class StarterConfig:
    """Main starter configuration combining the observability sub-configs."""
    description: str = field(default_factory=lambda: os.getenv("OAP_DESCRIPTION", "Apache SkyWalking OAP"))
    config_file: Path = field(default_factory=lambda: Path(os.getenv("OAP_CONFIG_FILE", "config/application.yml")))
    mode: str = field(default_factory=lambda: os.getenv("OAP_MODE", ""))

    # Discovery
    module_group: str = field(default_factory=lambda: os.getenv("OAP_MODULE_GROUP", MODULE_ENTRY_POINT_GROUP))
    provider_group: str = field(default_factory=lambda: os.getenv("OAP_PROVIDER_GROUP", PROVIDER_ENTRY_POINT_GROUP))

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for diagnostics."""
        return {
            "description": self.description,
            "config_file": str(self.config_file),
            "mode": self.mode or "normal",
            "module_group": self.module_group,
            "provider_group": self.provider_group,
            "log_level": self.logging.level,
            "log_json": self.logging.json_format,
            "tracing_enabled": self.tracing.enabled,
        }


# Singleton configuration instance
_config: Optional[StarterConfig] = None


def get_config() -> StarterConfig:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = StarterConfig()
    return _config

