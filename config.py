"""Application configuration."""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from apidoc_infer.introspection.source_index import DEFAULT_EXCLUDES


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class AnalysisConfig:
    """Inference and merge settings."""

    merge_policy: str = "static_first"
    fill_depth: int = 0
    inline_captured_examples: bool = False
    openapi_version: str = "3.0.3"
    title: str = "API"
    version: str = "1.0.0"
    rule_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        """Load config from environment variables."""
        return cls(
            merge_policy=os.getenv("APIDOC_MERGE_POLICY", "static_first"),
            fill_depth=int(os.getenv("APIDOC_FILL_DEPTH", "0")),
            inline_captured_examples=_env_bool("APIDOC_INLINE_CAPTURED_EXAMPLES", False),
            openapi_version=os.getenv("APIDOC_OPENAPI_VERSION", "3.0.3"),
            title=os.getenv("APIDOC_TITLE", "API"),
            version=os.getenv("APIDOC_VERSION", "1.0.0"),
            exclude_patterns=_env_list("APIDOC_EXCLUDE", DEFAULT_EXCLUDES),
        )


@dataclass
class CacheConfig:
    """Parse cache settings."""

    ttl: int = 3600  # 1 hour
    max_entries: int = 512

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Load config from environment variables."""
        return cls(
            ttl=int(os.getenv("APIDOC_CACHE_TTL", "3600")),
            max_entries=int(os.getenv("APIDOC_CACHE_MAX_ENTRIES", "512")),
        )


@dataclass
class CaptureConfig:
    """Runtime capture store settings."""

    storage_path: Optional[str] = None  # disabled when unset

    @classmethod
    def from_env(cls) -> "CaptureConfig":
        """Load config from environment variables."""
        return cls(storage_path=os.getenv("APIDOC_CAPTURE_DIR") or None)


@dataclass
class AppConfig:
    """Application configuration."""

    output_dir: str = "./output"
    analysis: AnalysisConfig = None
    cache: CacheConfig = None
    capture: CaptureConfig = None

    def __post_init__(self):
        """Initialize defaults."""
        if self.analysis is None:
            self.analysis = AnalysisConfig.from_env()
        if self.cache is None:
            self.cache = CacheConfig.from_env()
        if self.capture is None:
            self.capture = CaptureConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            output_dir=os.getenv("APIDOC_OUTPUT_DIR", "./output"),
            analysis=AnalysisConfig.from_env(),
            cache=CacheConfig.from_env(),
            capture=CaptureConfig.from_env(),
        )


# Global instance
app_config = AppConfig()
