"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
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
    explicit = os.getenv("MINDFUL_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
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
    """配置设置（使用 Pydantic）。"""

    # ---- 对话补全端点 ----
    completion_url: Optional[str] = Field(
        default=None,
        description="流式对话端点完整 URL，例如 https://<project>.supabase.co/functions/v1/chat",
    )
    completion_api_key: Optional[str] = Field(default=None, description="对话端点的 Bearer 密钥")
    http_timeout: float = Field(
        default=30.0,
        ge=1.0,
        description="连接/写入超时时间（秒）；流式读取不设超时",
    )

    # ---- 持久化 ----
    store_backend: Literal["json", "rest"] = Field(default="json", description="存储后端：json 或 rest")
    store_url: Optional[str] = Field(default=None, description="托管数据存储的 REST 基础URL")
    store_api_key: Optional[str] = Field(default=None, description="托管数据存储的 API key")
    storage_root: str = Field(default=".storage", description="本地 JSON 存储根目录")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 对话与语音 ----
    default_language: str = Field(default="en-US", description="默认语音语言")
    speech_rate: float = Field(default=0.9, gt=0.0, le=2.0, description="默认语速")
    mood_default_intensity: int = Field(default=5, ge=1, le=10, description="聊天自动记录心情时的强度")
    title_max_chars: int = Field(default=30, ge=1, description="根据首条消息生成标题时截取的字符数")
    max_history_messages: int = Field(default=50, ge=1, le=500, description="随请求发送的最大历史消息数")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("completion_api_key", "store_api_key")
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
