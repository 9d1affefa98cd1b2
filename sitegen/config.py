"""Configuration loading for sitegen (.sitegen.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".sitegen.yml"
DEFAULT_PROVIDER = "cerebras"
DEFAULT_DATA_DIR = ".sitegen/projects"
SUPPORTED_PROVIDERS = ("cerebras", "openai", "anthropic", "gemini")


@dataclass
class LLMConfig:
    """LLM provider settings from .sitegen.yml."""

    provider: str = DEFAULT_PROVIDER
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: Optional[float] = None


@dataclass
class PipelineConfig:
    """Reconciliation behaviour toggles."""

    fix_images: bool = True
    modification_file_budget: int = 6000


@dataclass
class DeployConfig:
    """Static hosting settings."""

    token: Optional[str] = None
    target: str = "production"
    team_id: Optional[str] = None
    preview_base_url: Optional[str] = None


@dataclass
class StorageConfig:
    """Where project documents are written."""

    data_dir: Path = Path(DEFAULT_DATA_DIR)


@dataclass
class SitegenConfig:
    """Represents the settings defined in .sitegen.yml plus environment overrides."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    templates_dir: Optional[Path] = None


def load_config(
    config_path: Path, *, environ: Mapping[str, str] | None = None
) -> SitegenConfig:
    """Load configuration from disk and apply environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        provider=(_as_str(llm_data.get("provider")) or DEFAULT_PROVIDER).lower(),
        model=_as_str(llm_data.get("model")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    pipeline_data = _as_dict(data.get("pipeline"))
    pipeline = PipelineConfig()
    fix_images = _as_bool(pipeline_data.get("fix_images"))
    if fix_images is not None:
        pipeline.fix_images = fix_images
    budget = _as_int(pipeline_data.get("modification_file_budget"))
    if budget is not None and budget > 0:
        pipeline.modification_file_budget = budget

    deploy_data = _as_dict(data.get("deploy"))
    deploy = DeployConfig(
        token=_as_str(deploy_data.get("token")),
        target=_as_str(deploy_data.get("target")) or "production",
        team_id=_as_str(deploy_data.get("team_id")),
        preview_base_url=_as_str(deploy_data.get("preview_base_url")),
    )

    storage_data = _as_dict(data.get("storage"))
    data_dir = _as_str(storage_data.get("data_dir")) or DEFAULT_DATA_DIR
    storage = StorageConfig(data_dir=root / data_dir)

    templates_dir_str = _as_str(data.get("templates_dir"))
    templates_dir = root / templates_dir_str if templates_dir_str else None

    config = SitegenConfig(
        root=root,
        llm=llm,
        pipeline=pipeline,
        deploy=deploy,
        storage=storage,
        templates_dir=templates_dir,
    )
    _apply_env_overrides(config, env)

    if config.llm.provider not in SUPPORTED_PROVIDERS:
        raise ConfigError(
            f"Unsupported LLM provider '{config.llm.provider}'. "
            f"Choose one of: {', '.join(SUPPORTED_PROVIDERS)}"
        )
    return config


def _apply_env_overrides(config: SitegenConfig, env: Mapping[str, str]) -> None:
    provider = env.get("SITEGEN_PROVIDER")
    if provider:
        config.llm.provider = provider.strip().lower()
    model = env.get("SITEGEN_LLM_MODEL")
    if model:
        config.llm.model = model
    api_key = env.get("SITEGEN_LLM_API_KEY")
    if api_key:
        config.llm.api_key = api_key
    base_url = env.get("SITEGEN_LLM_BASE_URL")
    if base_url:
        config.llm.base_url = base_url
    token = env.get("VERCEL_TOKEN")
    if token:
        config.deploy.token = token
    data_dir = env.get("SITEGEN_DATA_DIR")
    if data_dir:
        config.storage.data_dir = Path(data_dir).expanduser()


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DeployConfig",
    "LLMConfig",
    "PipelineConfig",
    "SitegenConfig",
    "StorageConfig",
    "SUPPORTED_PROVIDERS",
    "load_config",
]
