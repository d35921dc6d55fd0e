from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    Mapping,
    MutableMapping,
    Sequence,
)

import yaml
from pydantic import BaseModel, Field

from .acquisition import DEFAULT_ACQUISITION_MODEL
from .commentary import DEFAULT_COMMENTARY_MODEL, DEFAULT_THINKING_BUDGET
from .config import get_config

ENVIRONMENT_VARIABLE = "MATCHSIM_ENV"
EXTRA_CONFIG_VARIABLE = "MATCHSIM_CONFIG"
ENV_OVERRIDE_PREFIX = "MATCHSIM__"
DEFAULT_CONFIG_NAME = "matchsim.yaml"

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .acquisition import MatchDataProvider
    from .commentary import CommentaryGenerator
    from .engine import SimulationEngine
    from .sampling import RandomSource


class EngineConfig(BaseModel):
    """Trial count, seed and table size for the simulation engine.

    Trial count and seed default to the environment-driven settings in
    :mod:`matchsim.config`; YAML layers override them.
    """

    trial_count: int = Field(default_factory=lambda: get_config().trial_count)
    seed: int | None = Field(default_factory=lambda: get_config().seed)
    distribution_size: int = 10


class AcquisitionConfig(BaseModel):
    """Settings for the team statistics provider.

    The request timeout defaults to ``MATCHSIM_TIMEOUT``.
    """

    model: str = DEFAULT_ACQUISITION_MODEL
    retry_attempts: int = 2
    retry_backoff: float = 0.5
    timeout_seconds: float = Field(default_factory=lambda: float(get_config().timeout))


class CommentaryConfig(BaseModel):
    """Settings for the commentary generator."""

    enabled: bool = True
    model: str = DEFAULT_COMMENTARY_MODEL
    thinking_budget: int = DEFAULT_THINKING_BUDGET
    retry_attempts: int = 1
    retry_backoff: float = 0.5
    timeout_seconds: float = Field(default_factory=lambda: float(get_config().timeout))


class SimulatorConfig(BaseModel):
    """Aggregate configuration for the prediction stack."""

    environment: str = "default"
    engine: EngineConfig = Field(default_factory=EngineConfig)
    acquisition: AcquisitionConfig = Field(default_factory=AcquisitionConfig)
    commentary: CommentaryConfig = Field(default_factory=CommentaryConfig)


class ConfigurationError(ValueError):
    """Raised when matchsim configuration validation fails."""


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise TypeError(f"Configuration at {path} must be a mapping")
    return dict(data)


def _merge_layers(base: Dict[str, Any], layer: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in layer.items():
        if (
            key in merged
            and isinstance(merged[key], Mapping)
            and isinstance(value, Mapping)
        ):
            merged[key] = _merge_layers(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def _resolve_env_tokens(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda match: os.getenv(match.group(1), ""), value)
    if isinstance(value, Mapping):
        return {k: _resolve_env_tokens(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_resolve_env_tokens(item) for item in value]
    return value


def _coerce_env_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        return raw


def _set_nested(mapping: MutableMapping[str, Any], path: Iterable[str], value: Any) -> None:
    segments = list(path)
    if not segments:
        return
    head, *tail = segments
    key = head.lower().replace("-", "_")
    if not tail:
        mapping[key] = value
        return
    child = mapping.get(key)
    if not isinstance(child, MutableMapping):
        child = {}
    else:
        child = dict(child)
    mapping[key] = child
    _set_nested(child, tail, value)


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    updated = dict(data)
    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_OVERRIDE_PREFIX):
            continue
        suffix = key[len(ENV_OVERRIDE_PREFIX) :]
        if not suffix:
            continue
        path = [segment for segment in suffix.split("__") if segment]
        if not path:
            continue
        _set_nested(updated, path, _coerce_env_value(raw_value))
    return updated


def default_config_path() -> Path:
    return get_config().config_dir / DEFAULT_CONFIG_NAME


def load_simulator_config(
    *,
    base_path: str | os.PathLike[str] | None = None,
    environment: str | None = None,
    extra_paths: Sequence[str | os.PathLike[str]] | None = None,
) -> SimulatorConfig:
    """Load layered configuration for the prediction stack.

    The loader merges ``matchsim.yaml`` (from the user configuration
    directory unless ``base_path`` is given) with optional environment
    overrides (``matchsim.<env>.yaml``), additional override files and
    environment variables prefixed with ``MATCHSIM__``.  A missing base file
    is not an error; defaults apply.
    """

    config_path = Path(base_path) if base_path is not None else default_config_path()
    data: Dict[str, Any] = _load_yaml(config_path) if config_path.exists() else {}

    env_name = environment or os.getenv(ENVIRONMENT_VARIABLE) or data.get("environment")
    if isinstance(env_name, str):
        env_path = config_path.with_name(f"{config_path.stem}.{env_name}{config_path.suffix}")
        if env_path.exists():
            data = _merge_layers(data, _load_yaml(env_path))
        data["environment"] = env_name

    merged = dict(data)
    override_sources: list[Path] = []
    if extra_paths:
        override_sources.extend(Path(path) for path in extra_paths)
    env_overrides = os.getenv(EXTRA_CONFIG_VARIABLE)
    if env_overrides:
        override_sources.extend(Path(token) for token in env_overrides.split(os.pathsep) if token)

    for override in override_sources:
        if override.exists():
            merged = _merge_layers(merged, _load_yaml(override))

    merged = _apply_env_overrides(merged)
    merged = _resolve_env_tokens(merged)

    return SimulatorConfig.model_validate(merged)


def validate_simulator_config(config: SimulatorConfig) -> list[str]:
    """Validate a :class:`SimulatorConfig` instance.

    Args:
        config: Parsed configuration object to validate.

    Returns:
        A list of warning messages. The function raises
        :class:`ConfigurationError` if any fatal issues are detected.
    """

    errors: list[str] = []
    warnings: list[str] = []

    engine = config.engine
    if engine.trial_count <= 0:
        errors.append("engine.trial_count must be greater than zero")
    elif engine.trial_count < 1_000:
        warnings.append(
            "engine.trial_count is below 1000; probabilities will be noisy"
        )
    if engine.distribution_size <= 0:
        errors.append("engine.distribution_size must be greater than zero")

    for section_name in ("acquisition", "commentary"):
        section = getattr(config, section_name)
        if not section.model.strip():
            errors.append(f"{section_name}.model cannot be empty")
        if section.retry_attempts < 0:
            errors.append(f"{section_name}.retry_attempts must be non-negative")
        if section.retry_backoff < 0:
            errors.append(f"{section_name}.retry_backoff must be non-negative")
        if section.timeout_seconds <= 0:
            errors.append(f"{section_name}.timeout_seconds must be greater than zero")

    if config.commentary.thinking_budget < 0:
        errors.append("commentary.thinking_budget must be non-negative")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{bullet_list}")

    return warnings


def create_engine(
    config: SimulatorConfig,
    *,
    rng: "RandomSource" | None = None,
) -> "SimulationEngine":
    """Build a :class:`SimulationEngine` from configuration."""

    from .engine import SimulationConfig, SimulationEngine

    engine_cfg = config.engine
    return SimulationEngine(
        SimulationConfig(
            trial_count=engine_cfg.trial_count,
            seed=engine_cfg.seed,
            distribution_size=engine_cfg.distribution_size,
        ),
        rng=rng,
    )


def create_match_data_provider(
    config: SimulatorConfig,
    api_key: str,
) -> "MatchDataProvider":
    """Build the Gemini statistics provider with configured retry settings."""

    from .acquisition import GeminiMatchDataProvider
    from .client import AsyncHTTPClient

    acquisition = config.acquisition
    provider = GeminiMatchDataProvider(
        api_key,
        model=acquisition.model,
        client=AsyncHTTPClient(timeout=acquisition.timeout_seconds),
    )
    provider.retry_attempts = acquisition.retry_attempts
    provider.retry_backoff = acquisition.retry_backoff
    provider.timeout_seconds = acquisition.timeout_seconds
    return provider


def create_commentary_generator(
    config: SimulatorConfig,
    api_key: str,
) -> "CommentaryGenerator" | None:
    """Build the commentary generator, or ``None`` when commentary is disabled."""

    from .client import AsyncHTTPClient
    from .commentary import GeminiCommentaryGenerator

    commentary = config.commentary
    if not commentary.enabled:
        return None
    generator = GeminiCommentaryGenerator(
        api_key,
        model=commentary.model,
        thinking_budget=commentary.thinking_budget,
        client=AsyncHTTPClient(timeout=commentary.timeout_seconds),
    )
    generator.retry_attempts = commentary.retry_attempts
    generator.retry_backoff = commentary.retry_backoff
    generator.timeout_seconds = commentary.timeout_seconds
    return generator


__all__ = [
    "AcquisitionConfig",
    "CommentaryConfig",
    "ConfigurationError",
    "EngineConfig",
    "SimulatorConfig",
    "create_commentary_generator",
    "create_engine",
    "create_match_data_provider",
    "default_config_path",
    "load_simulator_config",
    "validate_simulator_config",
]
