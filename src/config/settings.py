"""Application configuration settings."""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


@dataclass
class HierarchySettings:
    """Reporting hierarchy validation configuration."""

    # Upper bound on supervisor hops walked on malformed data
    max_depth: int = 20

    # Warn when a projected reporting line reaches this many levels
    depth_warning_threshold: int = 10

    # Maximum number of reassignments accepted in one batch
    max_batch_size: int = 200

    # Separator used when rendering a cycle chain
    chain_separator: str = " → "


@dataclass
class Settings:
    """Main application settings."""

    # Application info
    app_name: str = "Position Hierarchy API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Hierarchy
    hierarchy: HierarchySettings = field(default_factory=HierarchySettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", "Position Hierarchy API"),
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            hierarchy=HierarchySettings(
                max_depth=int(os.getenv("HIERARCHY_MAX_DEPTH", "20")),
                depth_warning_threshold=int(os.getenv("HIERARCHY_DEPTH_WARNING", "10")),
                max_batch_size=int(os.getenv("HIERARCHY_MAX_BATCH_SIZE", "200")),
            ),
        )


# Singleton settings instance
_settings: Optional[Settings] = None


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
