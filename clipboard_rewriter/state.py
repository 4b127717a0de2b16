"""
监控共享状态

规则列表、轮询间隔和监控开关由控制端（命令行、界面、配置热加载线程）修改，
由监控循环读取；状态文本和最近写入值由监控循环写入、控制端读取。
所有字段都由同一把线程锁保护，读取方拿到的是不可变快照。
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from .clipboard_models import MonitorStatus, Rule, Settings
from .exceptions import RuleIndexError


class MonitorState:
    """监控循环与控制端之间共享的状态对象"""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self._lock = threading.Lock()
        self._rules: List[Rule] = list(settings.rules)
        self._interval_ms = settings.interval_ms
        self._rules_version = 0

        self._monitoring = False
        self._status = MonitorStatus.WAITING
        self._last_written = ""
        self._last_seen: Optional[str] = None
        self._seen_version = -1
        self._last_write_time: Optional[datetime] = None

    # ---- 规则与设置 ----

    def rules(self) -> Tuple[Rule, ...]:
        with self._lock:
            return tuple(self._rules)

    def rules_snapshot(self) -> Tuple[Tuple[Rule, ...], int]:
        """返回规则快照及其版本号"""
        with self._lock:
            return tuple(self._rules), self._rules_version

    def settings(self) -> Settings:
        with self._lock:
            return Settings(rules=list(self._rules), interval_ms=self._interval_ms)

    @property
    def interval(self) -> float:
        """轮询间隔（秒）"""
        with self._lock:
            return self._interval_ms / 1000.0

    def set_interval_ms(self, interval_ms: int):
        with self._lock:
            self._interval_ms = interval_ms

    def append_rule(self, rule: Rule) -> int:
        with self._lock:
            self._rules.append(rule)
            self._rules_version += 1
            return len(self._rules) - 1

    def set_rule_enabled(self, index: int, enabled: bool) -> Rule:
        """替换为启用状态不同的新规则对象，已共享出去的旧对象保持不变"""
        with self._lock:
            self._check_index(index)
            rule = replace(self._rules[index], enabled=enabled)
            self._rules[index] = rule
            self._rules_version += 1
            return rule

    def remove_rule(self, index: int) -> Rule:
        with self._lock:
            self._check_index(index)
            rule = self._rules.pop(index)
            self._rules_version += 1
            return rule

    def replace_settings(self, settings: Settings):
        with self._lock:
            self._rules = list(settings.rules)
            self._interval_ms = settings.interval_ms
            self._rules_version += 1

    def _check_index(self, index: int):
        if not 0 <= index < len(self._rules):
            raise RuleIndexError(index, len(self._rules))

    # ---- 监控开关 ----

    def is_monitoring(self) -> bool:
        with self._lock:
            return self._monitoring

    def set_monitoring(self, enabled: bool):
        with self._lock:
            self._monitoring = enabled
            self._status = MonitorStatus.STARTED if enabled else MonitorStatus.STOPPED

    # ---- 监控循环写入的状态 ----

    @property
    def status(self) -> MonitorStatus:
        with self._lock:
            return self._status

    def set_status(self, status: MonitorStatus):
        with self._lock:
            self._status = status

    @property
    def last_written(self) -> str:
        with self._lock:
            return self._last_written

    @property
    def last_write_time(self) -> Optional[datetime]:
        with self._lock:
            return self._last_write_time

    def record_write(self, text: str):
        with self._lock:
            self._last_written = text
            self._last_write_time = datetime.now()
            self._status = MonitorStatus.WRITTEN

    def mark_seen(self, text: str, rules_version: int):
        with self._lock:
            self._last_seen = text
            self._seen_version = rules_version

    def is_unchanged(self, text: str) -> bool:
        """文本是否为本进程写入的值，或在规则未变时已经处理过"""
        with self._lock:
            if text == self._last_written:
                # 之后再次复制原始文本时需要重新处理
                self._last_seen = text
                self._seen_version = self._rules_version
                return True
            return text == self._last_seen and self._seen_version == self._rules_version
