"""
剪贴板规则替换工具

监控剪贴板文本，按用户定义的正则规则依次替换后写回剪贴板。
"""

# 导入版本信息
from .__version__ import (
    __version__,
    __version_info__,
    PROJECT_NAME,
    PROJECT_DESCRIPTION,
    AUTHOR,
    get_version_string,
    get_version_info
)
from .clipboard_adapter import ClipboardAdapter
from .clipboard_models import (
    ClipboardContent,
    ContentKind,
    CycleOutcome,
    MonitorStatus,
    ReadKind,
    Rule,
    Settings,
)
from .clipboard_monitor import ClipboardMonitor
from .config import AppConfig
from .content_classifier import ContentClassifier
from .controller import RuleController
from .exceptions import (
    ClipboardRewriterError,
    ConfigError,
    SettingsLoadError,
    SettingsSaveError,
    RuleError,
    RulePatternError,
    RuleValidationError,
    RuleIndexError,
    ClipboardError,
    ClipboardReadError,
    ClipboardWriteError,
)
from .rule_engine import RuleEngine
from .rule_store import RuleStore
from .state import MonitorState

__author__ = AUTHOR
__all__ = [
    # 版本信息
    "__version__",
    "__version_info__",
    "PROJECT_NAME",
    "PROJECT_DESCRIPTION",
    "get_version_string",
    "get_version_info",
    # 核心类
    "AppConfig",
    "ClipboardAdapter",
    "ClipboardMonitor",
    "ContentClassifier",
    "MonitorState",
    "RuleController",
    "RuleEngine",
    "RuleStore",
    # 数据模型
    "ClipboardContent",
    "ContentKind",
    "CycleOutcome",
    "MonitorStatus",
    "ReadKind",
    "Rule",
    "Settings",
    # 异常类
    "ClipboardRewriterError",
    "ConfigError",
    "SettingsLoadError",
    "SettingsSaveError",
    "RuleError",
    "RulePatternError",
    "RuleValidationError",
    "RuleIndexError",
    "ClipboardError",
    "ClipboardReadError",
    "ClipboardWriteError",
]
