"""Application configuration (Pydantic v2). Load from seotagger_config.yml with env overrides."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, field_validator

DEFAULT_DATABASE_URL = "sqlite:///data/seotagger.db"
DEFAULT_CONFIG_ENV_VAR = "SEOTAGGER_CONFIG"
DEFAULT_CONFIG_FILENAME = "seotagger_config.yml"
DEFAULT_PROMPT = "Please analyze this image and provide metadata in the specified JSON format."

ENDPOINT_MODES = ("openai", "custom")

# Environment variable -> Settings field. Env wins over YAML.
ENV_OVERRIDES: dict[str, str] = {
    "DATABASE_URL": "database_url",
    "UPLOAD_DIR": "upload_dir",
    "MODEL_ENDPOINT_MODE": "model_endpoint_mode",
    "LM_BASE": "lm_base",
    "LM_MODEL": "lm_model",
    "LM_API_KEY": "lm_api_key",
    "BACKEND_BASE": "backend_base",
    "REQUEST_TIMEOUT_MS": "request_timeout_ms",
    "REQUEST_RETRIES": "request_retries",
}


class Settings(BaseModel):
    """
    Application config loaded from YAML.

    Endpoint fields are validated for shape only; whether the selected mode has what it
    needs is checked by the endpoint factory so misconfiguration fails at startup.
    """

    model_config = {"extra": "ignore"}

    database_url: str = DEFAULT_DATABASE_URL
    upload_dir: str = "uploads"
    log_level: str = "INFO"
    forensics_dir: str = "logs/forensics"

    model_endpoint_mode: str = "openai"
    lm_base: str | None = None
    lm_model: str | None = None
    lm_api_key: str = ""
    backend_base: str | None = None
    request_timeout_ms: int = 60_000
    request_retries: int = 2
    retry_base_delay_ms: int = 1_000
    max_tokens: int = 512

    max_workers: int = 1
    default_prompt: str = DEFAULT_PROMPT

    @field_validator("model_endpoint_mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            return "openai"
        return str(v).strip().lower()

    @field_validator("lm_base", "lm_model", "backend_base", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is None or str(v).strip() == "":
            return None
        return str(v).strip()

    @field_validator("request_timeout_ms", "max_tokens", "max_workers")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("request_retries", "retry_base_delay_ms")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the config path from SEOTAGGER_CONFIG / seotagger_config.yml, then
      apply the ENV_OVERRIDES keys that are set.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def _apply_env(self, data: dict[str, Any]) -> dict[str, Any]:
        for env_key, field_name in ENV_OVERRIDES.items():
            value = self._env.get(env_key)
            if value is not None and value != "":
                data[field_name] = value
        return data

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if apply_env_override:
            data = self._apply_env(data)
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """Load Settings from the default YAML path when present, otherwise from env alone."""
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)
        return Settings.model_validate(self._apply_env({}))


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it (without env overrides) and update the cache.
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = ConfigLoader().load_from_yaml(Path(config_path), apply_env_override=False)
        return _config
    if _config is not None:
        return _config
    _config = ConfigLoader().load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None
