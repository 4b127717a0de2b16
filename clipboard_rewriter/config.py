"""
配置管理模块

包含：
- 运行参数常量与默认值
- 设置文件（规则 + 轮询间隔）的数据模型
- 应用运行配置 AppConfig
"""

import math
import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 设置文件
DEFAULT_SETTINGS_FILE = "settings.json"
SETTINGS_ENV_VAR = "CLIPBOARD_REWRITER_SETTINGS"

# 监控参数
DEFAULT_INTERVAL_MS = 500
MAX_INTERVAL_MS = 10 * 60 * 1000  # 轮询间隔上限(毫秒)
IDLE_TICK = 0.2  # 停止监控时的检查间隔(秒)
MAX_TEXT_BYTES = 512 * 512  # 256 KiB
WRITE_ATTEMPTS = 2
WRITE_BACKOFF = 0.2  # 写入重试间隔(秒)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_settings_path() -> Path:
    """默认设置文件路径：环境变量优先，否则为当前目录下的 settings.json"""
    env_path = os.getenv(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_SETTINGS_FILE


class RuleModel(BaseModel):
    """设置文件中单条规则的数据模型"""
    pattern: str
    replacement: str = ""
    enabled: bool = False

    model_config = ConfigDict(extra="ignore")


class SettingsModel(BaseModel):
    """设置文件顶层数据模型

    rules 中的条目在 RuleStore 中逐条校验，单条损坏不影响其他规则。
    """
    rules: List[Any] = []
    interval_ms: int = DEFAULT_INTERVAL_MS

    model_config = ConfigDict(extra="ignore")

    @field_validator("rules", mode="before")
    @classmethod
    def validate_rules(cls, v: Any) -> List[Any]:
        """非列表的 rules 视为空列表"""
        if v is None or not isinstance(v, list):
            return []
        return v

    @field_validator("interval_ms", mode="before")
    @classmethod
    def validate_interval_ms(cls, v: Any) -> int:
        """缺失、非数值或超出 1 - MAX_INTERVAL_MS 范围的间隔回退到默认值"""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return DEFAULT_INTERVAL_MS
        # 先排除 NaN/inf，再比较范围；超大整数不转换为浮点数
        if isinstance(v, float) and not math.isfinite(v):
            return DEFAULT_INTERVAL_MS
        if not 1 <= v <= MAX_INTERVAL_MS:
            return DEFAULT_INTERVAL_MS
        return int(v)


class AppConfig(BaseModel):
    """应用运行配置"""
    settings_path: Path = Field(default_factory=default_settings_path)
    log_level: str = "INFO"
    log_file: Optional[str] = None
    watch_settings: bool = False
    start_paused: bool = False
    max_text_bytes: int = MAX_TEXT_BYTES
    idle_tick: float = IDLE_TICK

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别"""
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"日志级别必须是 {', '.join(LOG_LEVELS)} 之一")
        return level

    @field_validator("max_text_bytes")
    @classmethod
    def validate_max_text_bytes(cls, v: int) -> int:
        """验证文本大小上限"""
        if v <= 0:
            raise ValueError("文本大小上限必须大于0")
        return v

    @field_validator("idle_tick")
    @classmethod
    def validate_idle_tick(cls, v: float) -> float:
        """验证空闲检查间隔"""
        if v <= 0 or v > 5:
            raise ValueError("空闲检查间隔必须在0-5秒之间")
        return v
