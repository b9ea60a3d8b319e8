"""Configuration management using Pydantic settings."""

from enum import Enum
from functools import lru_cache
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class MissingVariableBehavior(str, Enum):
    """How an unresolved template variable is rendered."""
    EMPTY = "empty"
    ERROR = "error"
    KEEP = "keep"


class ProcessorEntry(BaseModel):
    """Canonical (name, config) pair for a configured processor."""

    name: str
    config: Dict[str, Any] = Field(default_factory=dict)


def normalize_processor_entries(value: Any) -> List[ProcessorEntry]:
    """
    Normalize heterogeneous processor list configuration.

    Accepts any mix of:
        "trim"
        {"extract_xml_tag": {"tag": "answer"}}
        {"name": "extract_xml_tag", "config": {"tag": "answer"}}
        ProcessorEntry(...)
    """
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        value = [value]

    entries: List[ProcessorEntry] = []
    for item in value:
        if isinstance(item, ProcessorEntry):
            entries.append(item)
        elif isinstance(item, str):
            entries.append(ProcessorEntry(name=item))
        elif isinstance(item, dict) and "name" in item:
            entries.append(ProcessorEntry(name=item["name"], config=item.get("config") or {}))
        elif isinstance(item, dict):
            for name, config in item.items():
                entries.append(ProcessorEntry(name=name, config=config or {}))
        else:
            raise ValueError(f"Invalid processor entry: {item!r}")
    return entries


class CacheSettings(BaseSettings):
    """Compiled template cache configuration."""

    enabled: bool = True
    path: Optional[str] = None
    max_size: int = Field(256, ge=1)

    model_config = {"env_prefix": "PP_CACHE_", "extra": "ignore"}


class FragmentSettings(BaseSettings):
    """Fragment resolution configuration."""

    max_depth: int = Field(3, ge=1)

    model_config = {"env_prefix": "PP_FRAGMENT_", "extra": "ignore"}


class SandboxSettings(BaseSettings):
    """Extra allow-listed filters and functions.

    Blocked constructs (include, extends, ...) cannot be re-enabled here.
    """

    allowed_filters: List[str] = Field(default_factory=list)
    allowed_functions: List[str] = Field(default_factory=list)

    model_config = {"env_prefix": "PP_SANDBOX_", "extra": "ignore"}


class ProcessorSettings(BaseSettings):
    """Default input and output processors run on every render."""

    input: List[ProcessorEntry] = Field(default_factory=list)
    output: List[ProcessorEntry] = Field(default_factory=list)

    model_config = {"env_prefix": "PP_PROCESSORS_", "extra": "ignore"}

    @field_validator("input", "output", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> List[ProcessorEntry]:
        return normalize_processor_entries(value)


class ExclusionSettings(BaseSettings):
    """Exclusions applied to every render."""

    fragments: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    model_config = {"env_prefix": "PP_EXCLUDE_", "extra": "ignore"}


class WhitespaceStrategySettings(BaseModel):
    normalize_spaces: bool = True
    trim_lines: bool = True
    preserve_indentation: bool = False


class BlankLinesStrategySettings(BaseModel):
    max_consecutive: int = Field(2, ge=0)
    trim_start: bool = True
    trim_end: bool = True


class DuplicateLinesStrategySettings(BaseModel):
    case_sensitive: bool = False
    ignore_whitespace: bool = True


class DuplicateSentencesStrategySettings(BaseModel):
    case_sensitive: bool = False
    similarity_threshold: float = Field(0.85, ge=0.0, le=1.0)
    keep_first: bool = True


class DeduplicationSettings(BaseSettings):
    """Defaults for the deduplicate processor, filter and functions."""

    default_strategies: List[str] = Field(default_factory=lambda: ["whitespace", "blank_lines"])
    whitespace: WhitespaceStrategySettings = Field(default_factory=WhitespaceStrategySettings)
    blank_lines: BlankLinesStrategySettings = Field(default_factory=BlankLinesStrategySettings)
    duplicate_lines: DuplicateLinesStrategySettings = Field(default_factory=DuplicateLinesStrategySettings)
    duplicate_sentences: DuplicateSentencesStrategySettings = Field(
        default_factory=DuplicateSentencesStrategySettings
    )

    model_config = {"env_prefix": "PP_DEDUP_", "extra": "ignore"}


class StructureSettings(BaseSettings):
    """MarkupBuilder defaults."""

    xml_method_case: str = "snake"
    xml_newlines: bool = True

    model_config = {"env_prefix": "PP_", "extra": "ignore"}

    @field_validator("xml_method_case")
    @classmethod
    def _check_case(cls, value: str) -> str:
        if value not in ("snake", "preserve"):
            raise ValueError("xml_method_case must be 'snake' or 'preserve'")
        return value


class AppSettings(BaseSettings):
    """Application values exposed by the environment variable provider."""

    name: str = "promptpipeline"
    env: str = "production"
    debug: bool = False
    url: Optional[str] = None

    model_config = {"env_prefix": "PP_APP_", "extra": "ignore"}


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "plain"

    model_config = {"env_prefix": "PP_LOG_", "extra": "ignore"}


class Settings(BaseSettings):
    """Root configuration aggregating all settings."""

    cache: CacheSettings = Field(default_factory=CacheSettings)
    fragments: FragmentSettings = Field(default_factory=FragmentSettings)
    sandbox: SandboxSettings = Field(default_factory=SandboxSettings)
    providers: List[str] = Field(default_factory=lambda: ["datetime", "environment"])
    processors: ProcessorSettings = Field(default_factory=ProcessorSettings)
    exclusions: ExclusionSettings = Field(default_factory=ExclusionSettings)
    deduplication: DeduplicationSettings = Field(default_factory=DeduplicationSettings)
    structure: StructureSettings = Field(default_factory=StructureSettings)
    missing_variable_behavior: MissingVariableBehavior = MissingVariableBehavior.EMPTY
    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {
        "env_prefix": "PP_",
        "env_file": ".env",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
