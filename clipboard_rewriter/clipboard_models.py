"""
剪贴板处理相关数据模型
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern

from .config import DEFAULT_INTERVAL_MS
from .utils import TemplatePart, parse_template


@dataclass
class Rule:
    """一条替换规则

    pattern / replacement / enabled 会被持久化；matcher、error、template
    都是由 pattern 和 replacement 派生的缓存，不参与比较也不写入文件。
    """
    pattern: str
    replacement: str = ""
    enabled: bool = True
    matcher: Optional[Pattern[str]] = field(default=None, init=False, repr=False, compare=False)
    error: Optional[str] = field(default=None, init=False, repr=False, compare=False)
    template: List[TemplatePart] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.compile()

    def compile(self) -> Optional[str]:
        """重新编译正则表达式，返回错误信息（成功时为 None）"""
        self.matcher = None
        self.error = None
        self.template = parse_template(self.replacement)
        if not self.pattern:
            return None
        try:
            self.matcher = re.compile(self.pattern)
        except (re.error, RecursionError, OverflowError) as e:
            self.error = str(e)
        return self.error

    @property
    def is_valid(self) -> bool:
        return self.matcher is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "replacement": self.replacement,
            "enabled": self.enabled,
        }

    def describe(self) -> str:
        return f"{self.pattern} -> {self.replacement}"


@dataclass
class Settings:
    """持久化的设置聚合：有序规则列表 + 轮询间隔"""
    rules: List[Rule] = field(default_factory=list)
    interval_ms: int = DEFAULT_INTERVAL_MS

    @property
    def interval(self) -> float:
        """轮询间隔（秒）"""
        return self.interval_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "interval_ms": self.interval_ms,
        }


class ReadKind(Enum):
    OK = "ok"
    NON_TEXT = "non_text"


@dataclass
class ClipboardContent:
    """一次剪贴板读取的结果"""
    text: str
    kind: ReadKind = ReadKind.OK

    @property
    def is_text(self) -> bool:
        return self.kind is ReadKind.OK


class ContentKind(Enum):
    TEXT = "text"
    NON_TEXT = "non_text"
    TOO_LARGE = "too_large"


class MonitorStatus(Enum):
    """对外展示的状态文本"""
    WAITING = "Waiting for actions"
    STARTED = "Monitoring started"
    STOPPED = "Monitoring stopped"
    NON_TEXT = "Non-text content detected, skipping"
    TOO_LARGE = "Text too large, skipping"
    WRITTEN = "Successfully wrote to clipboard"
    WRITE_FAILED = "Failed to write to clipboard"


class CycleOutcome(Enum):
    """单次监控周期的结果"""
    IDLE = "idle"
    READ_FAILED = "read_failed"
    NON_TEXT = "non_text"
    TOO_LARGE = "too_large"
    UNCHANGED = "unchanged"
    NO_MATCH = "no_match"
    WRITTEN = "written"
    WRITE_FAILED = "write_failed"


@dataclass
class RuleHit:
    """一条规则在某次替换中生效的记录"""
    index: int
    count: int
