"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证和环境变量覆盖。
"""

from datetime import timedelta
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_WINDOWS, Window
from .utils import parse_duration


class APIConfig(BaseModel):
    """API 服务配置"""
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = ["http://localhost:8080", "http://127.0.0.1:8080"]


class StoreConfig(BaseModel):
    """内存存储配置"""
    shard_count: int = Field(default=64, ge=1)


class RetentionConfig(BaseModel):
    """数据保留策略"""
    period: Optional[str] = None  # 如 "24h"，缺省为最大窗口长度
    sweep_interval_seconds: int = Field(default=300, ge=1)


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AppConfig(BaseModel):
    """应用配置（完整配置）"""
    api: APIConfig = Field(default_factory=APIConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    windows: List[str] = Field(default_factory=lambda: [w.label for w in DEFAULT_WINDOWS])
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("windows")
    @classmethod
    def check_windows(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one window must be configured")
        for text in value:
            Window.parse(text)
        return value

    @model_validator(mode="after")
    def check_retention(self) -> "AppConfig":
        if self.retention.period is not None:
            period = parse_duration(self.retention.period)
            longest = max(w.length for w in self.query_windows)
            if period < longest:
                raise ValueError(
                    f"retention period {self.retention.period} is shorter than the longest window"
                )
        return self

    @property
    def query_windows(self) -> List[Window]:
        return [Window.parse(text) for text in self.windows]

    @property
    def retention_period(self) -> timedelta:
        if self.retention.period is not None:
            return parse_duration(self.retention.period)
        return max(w.length for w in self.query_windows)


class EnvSettings(BaseSettings):
    """环境变量覆盖（LOAD_MONITOR_ 前缀）"""
    model_config = SettingsConfigDict(env_prefix="LOAD_MONITOR_")

    config_path: str = "config.yaml"
    log_level: Optional[str] = None


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 LOAD_MONITOR_CONFIG_PATH
    3. 默认路径 config.yaml（当前工作目录）
    """
    env = EnvSettings()
    if config_path is None:
        config_path = env.config_path

    raw_config = {}
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}

    if env.log_level:
        raw_config.setdefault("logging", {})
        raw_config["logging"]["level"] = env.log_level

    # 配置文件不存在时使用默认配置
    return AppConfig(**raw_config)


# 全局配置实例（延迟加载）
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置实例（单例模式）"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: AppConfig):
    """替换全局配置（命令行参数覆盖后使用）"""
    global _config
    _config = config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
