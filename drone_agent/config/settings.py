"""配置管理模块。

按以下顺序解析配置：初始化参数、环境变量、``.env``，
最后是 ``config.yaml``（或 ``AGENT_CONFIG_FILE`` 指定的文件）。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """无人机配置器 Agent 的运行时配置。"""

    # ---- provider ----
    default_provider: str = Field(
        default="openai",
        description="Provider used for chat completions, e.g. openai or kimi",
    )
    default_model: str = Field(
        default="drone-chat",
        description="Logical model name, mapped to a vendor model by the registry",
    )
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI API base URL")
    kimi_api_key: Optional[str] = Field(default=None, description="Kimi API key")
    kimi_base_url: str = Field(default="https://api.moonshot.cn/v1", description="Kimi API base URL")
    embedding_model: str = Field(default="text-embedding-3-large", description="Embedding model name")

    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP timeout in seconds")
    turn_timeout: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper bound for the decision, retrieval and synthesis steps of one turn",
    )

    # ---- storage ----
    store_backend: Literal["memory", "sqlite"] = Field(default="memory", description="Conversation store backend")
    sqlite_path: str = Field(default=".storage/checkpoints.db", description="SQLite checkpoint database path")

    # ---- logging ----
    log_dir: str = Field(default="logs", description="Log directory")
    log_redact_content: bool = Field(default=False, description="Truncate message text in logs")

    # ---- orchestration ----
    decision_window: int = Field(default=10, ge=1, le=100, description="Messages sent with the routing call")
    synthesis_window: int = Field(default=10, ge=1, le=100, description="Messages sent with the synthesis call")
    retrieval_k: int = Field(default=2, ge=1, le=20, description="Documents fetched per retrieval")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key", "kimi_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
