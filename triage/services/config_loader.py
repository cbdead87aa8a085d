"""Classification config loading from files, profiles and repository overrides.

Configuration files are YAML (or JSON, by extension) and validate into
``ClassificationConfig``.  Validation failures never stop the engine: the
loader records the error on the result and hands back ``MINIMAL_CONFIG``.
Loaded configs are cached per (repository, profile) key.
"""

import copy
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from triage.models.config import (
    DEFAULT_CONFIG,
    MINIMAL_CONFIG,
    ClassificationConfig,
    ConfigurationProfile,
    ConfigurationUpdate,
)
from triage.models.issue import RepositoryContext
from triage.services.cache import TTLCache

logger = logging.getLogger(__name__)

ConfigSource = Literal["file", "memory", "default", "fallback"]

DEFAULT_CONFIG_CACHE_TTL = 300  # seconds


class ConfigError(Exception):
    """A configuration file could not be read or validated."""


@dataclass
class ConfigLoadResult:
    config: ClassificationConfig
    source: ConfigSource
    load_time_ms: float = 0.0
    from_cache: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class UpdateResult:
    success: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ValidationReport:
    valid: bool
    errors: list[str] = field(default_factory=list)


def _read_document(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON config file into a dict."""
    try:
        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} does not contain a mapping")
    return data


def _upgrade_legacy(data: dict[str, Any]) -> dict[str, Any]:
    """Bring a 1.x config up to the 2.x shape.

    A mapping without a ``version`` is taken as current.  Legacy fields sit
    on top of ``DEFAULT_CONFIG``, so an upgraded file keeps the default
    scoring algorithm unless it names its own.
    """
    version = data.get("version")
    if version is None or str(version).startswith("2."):
        return data
    legacy = {
        to_snake(k): v
        for k, v in data.items()
        if to_snake(k) not in ("custom_rules", "repositories")
    }
    defaults = DEFAULT_CONFIG.model_dump(mode="json")
    return {
        **defaults,
        **legacy,
        "version": "2.0.0",
        "custom_rules": [],
        "repositories": [],
    }


def parse_config(data: dict[str, Any]) -> ClassificationConfig:
    """Validate a raw config mapping, raising ConfigError on failure."""
    try:
        return ClassificationConfig.model_validate(_upgrade_legacy(data))
    except ValidationError as e:
        raise ConfigError(f"Invalid classification config: {e}") from e


def merge_configs(
    base: ClassificationConfig, override: ClassificationConfig
) -> ClassificationConfig:
    """Overlay the fields *override* sets explicitly on *base*.

    Rule and repository lists are concatenated rather than replaced.
    """
    updates = {name: getattr(override, name) for name in override.model_fields_set}
    updates.update(
        rules=[*base.rules, *override.rules],
        custom_rules=[*base.custom_rules, *override.custom_rules],
        repositories=[*base.repositories, *override.repositories],
    )
    return base.model_copy(update=updates)


# Mapping-valued fields whose keys are data (label names), not field names
_MAP_FIELDS = frozenset({"category_weights", "priority_weights"})


def _path_segments(path: str) -> list[str]:
    """Split a dotted path, snake-casing field names but not map keys."""
    segments: list[str] = []
    for raw in path.split("."):
        if not raw:
            continue
        if segments and segments[-1] in _MAP_FIELDS:
            segments.append(raw)
        else:
            segments.append(to_snake(raw))
    return segments


def _child(node: Any, segment: str, path: str) -> Any:
    if isinstance(node, list):
        return node[int(segment)]
    if not isinstance(node, dict):
        raise ConfigError(f"Cannot descend into {segment!r} of {path!r}")
    if node.get(segment) is None:
        node[segment] = {}
    return node[segment]


def apply_update(data: dict[str, Any], update: ConfigurationUpdate) -> dict[str, Any]:
    """Apply a dotted-path update to a config mapping, returning a new mapping.

    Field segments may be camelCase or snake_case; keys under
    ``categoryWeights``/``priorityWeights`` are used as given.
    """
    updated = copy.deepcopy(data)
    segments = _path_segments(update.path)
    if not segments:
        raise ConfigError("Update path is empty")

    current: Any = updated
    for segment in segments[:-1]:
        current = _child(current, segment, update.path)
    if not isinstance(current, dict):
        raise ConfigError(f"{update.path!r} does not end in a mapping")

    last = segments[-1]
    if update.operation == "set":
        current[last] = update.value
    elif update.operation == "merge":
        existing = current.get(last)
        if isinstance(existing, dict) and isinstance(update.value, dict):
            current[last] = {**existing, **update.value}
        else:
            current[last] = update.value
    elif update.operation == "append":
        existing = current.get(last)
        if isinstance(existing, list):
            existing.append(update.value)
        else:
            current[last] = [update.value]
    elif update.operation == "remove":
        current.pop(last, None)
    return updated


class ConfigLoader:
    """Loads and caches the effective configuration for a repository/profile."""

    def __init__(
        self,
        config_paths: list[Path] | None = None,
        profiles_dir: Path | None = None,
        cache_ttl: float = DEFAULT_CONFIG_CACHE_TTL,
    ) -> None:
        self._config_paths = config_paths or []
        self._profiles_dir = profiles_dir
        self._cache = TTLCache(ttl=cache_ttl, max_size=50, evict_expired=True)
        self._profile_cache: dict[str, ConfigurationProfile] = {}

    @staticmethod
    def cache_key(
        repository_context: RepositoryContext | None = None,
        profile_id: str | None = None,
    ) -> str:
        parts = ["config"]
        if repository_context:
            parts.extend([repository_context.owner, repository_context.repo])
        if profile_id:
            parts.append(profile_id)
        return ":".join(parts)

    async def load_config(
        self,
        repository_context: RepositoryContext | None = None,
        profile_id: str | None = None,
    ) -> ConfigLoadResult:
        """Resolve the effective config, serving from cache when fresh."""
        started = time.perf_counter()
        key = self.cache_key(repository_context, profile_id)

        cached = self._cache.get(key)
        if cached is not None:
            return ConfigLoadResult(
                config=cached,
                source="memory",
                from_cache=True,
                load_time_ms=(time.perf_counter() - started) * 1000,
            )

        result = self._load_base()

        if profile_id:
            profile = self._load_profile(profile_id)
            if profile is not None:
                result.config = merge_configs(result.config, profile.config)
            else:
                result.warnings.append(f"Profile {profile_id!r} not found")

        if repository_context:
            result.config = self._apply_repository(
                result.config, repository_context, result.warnings
            )

        if result.source != "fallback":
            self._cache.set(key, result.config)
        result.load_time_ms = (time.perf_counter() - started) * 1000
        return result

    def _load_base(self) -> ConfigLoadResult:
        errors: list[str] = []
        for path in self._config_paths:
            if not path.exists():
                continue
            try:
                config = parse_config(_read_document(path))
            except ConfigError as e:
                logger.warning("Skipping config file %s: %s", path, e)
                errors.append(str(e))
                continue
            logger.info("Loaded classification config from %s", path)
            return ConfigLoadResult(config=config, source="file", errors=errors)

        if errors:
            logger.error("No valid classification config found, using minimal config")
            return ConfigLoadResult(
                config=MINIMAL_CONFIG,
                source="fallback",
                errors=errors,
                warnings=["Using fallback configuration"],
            )
        return ConfigLoadResult(config=DEFAULT_CONFIG, source="default")

    def _load_profile(self, profile_id: str) -> ConfigurationProfile | None:
        if profile_id in self._profile_cache:
            return self._profile_cache[profile_id]
        if self._profiles_dir is None:
            return None

        for suffix in (".yaml", ".yml", ".json"):
            path = self._profiles_dir / f"{profile_id}{suffix}"
            if not path.exists():
                continue
            try:
                data = _read_document(path)
                data["config"] = _upgrade_legacy(data.get("config") or {})
                profile = ConfigurationProfile.model_validate(data)
            except (ConfigError, ValidationError) as e:
                logger.warning("Failed to load profile %s: %s", profile_id, e)
                return None
            self._profile_cache[profile_id] = profile
            return profile
        return None

    @staticmethod
    def _apply_repository(
        config: ClassificationConfig,
        repository_context: RepositoryContext,
        warnings: list[str],
    ) -> ClassificationConfig:
        repo_config = config.repository(
            repository_context.owner, repository_context.repo
        )
        if repo_config is None or repo_config.enabled:
            return config
        warnings.append(f"Classification disabled for {repository_context.slug}")
        return config.model_copy(update={"rules": [], "custom_rules": []})

    async def update_configuration(
        self,
        update: ConfigurationUpdate,
        repository_context: RepositoryContext | None = None,
    ) -> UpdateResult:
        """Apply *update* to the effective config and cache the validated result."""
        loaded = await self.load_config(repository_context)
        try:
            data = apply_update(loaded.config.model_dump(mode="json"), update)
            config = ClassificationConfig.model_validate(data)
        except (ConfigError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("Rejected config update at %s: %s", update.path, e)
            return UpdateResult(
                success=False, errors=[f"Failed to update configuration: {e}"]
            )

        self._cache.set(self.cache_key(repository_context), config)
        return UpdateResult(success=True, warnings=loaded.warnings)

    @staticmethod
    def validate_configuration(data: Any) -> ValidationReport:
        if not isinstance(data, dict):
            return ValidationReport(
                valid=False, errors=["Configuration must be a mapping"]
            )
        try:
            parse_config(data)
        except ConfigError as e:
            return ValidationReport(valid=False, errors=[str(e)])
        return ValidationReport(valid=True)

    def clear_cache(self) -> None:
        self._cache.clear()
        self._profile_cache.clear()
