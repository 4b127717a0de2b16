"""
规则控制端

供命令行或图形界面调用：增删规则、启用/停用规则、启停监控。
每次修改规则后都会持久化到设置文件。
"""

import threading
from typing import Tuple

from .clipboard_models import MonitorStatus, Rule, Settings
from .config import MAX_INTERVAL_MS
from .exceptions import RulePatternError, RuleValidationError
from .logging_config import get_logger
from .rule_store import RuleStore
from .state import MonitorState


class RuleController:
    """控制端命令处理器"""

    def __init__(self, state: MonitorState, store: RuleStore):
        self.state = state
        self.store = store
        self.logger = get_logger("Controller")
        # 保证持久化顺序与修改顺序一致
        self._edit_lock = threading.Lock()

    # ---- 规则编辑 ----

    def add_rule(self, pattern: str, replacement: str) -> Rule:
        """添加一条启用的规则

        Raises:
            RuleValidationError: 规则表达式为空
            RulePatternError: 正则表达式无法编译
        """
        if not pattern:
            raise RuleValidationError("规则表达式不能为空", field="pattern")

        rule = Rule(pattern=pattern, replacement=replacement, enabled=True)
        if rule.error:
            raise RulePatternError(f"无效的正则表达式 {pattern!r}: {rule.error}", pattern=pattern)

        with self._edit_lock:
            index = self.state.append_rule(rule)
            self._persist()
        self.logger.info(f"已添加规则 {index}: {rule.describe()}")
        return rule

    def set_enabled(self, index: int, enabled: bool) -> Rule:
        with self._edit_lock:
            rule = self.state.set_rule_enabled(index, enabled)
            self._persist()
        self.logger.info(f"规则 {index} 已{'启用' if enabled else '停用'}: {rule.describe()}")
        return rule

    def delete_rule(self, index: int) -> Rule:
        with self._edit_lock:
            rule = self.state.remove_rule(index)
            self._persist()
        self.logger.info(f"已删除规则 {index}: {rule.describe()}")
        return rule

    def set_interval(self, interval_ms: int):
        if (
            isinstance(interval_ms, bool)
            or not isinstance(interval_ms, int)
            or not 1 <= interval_ms <= MAX_INTERVAL_MS
        ):
            raise RuleValidationError(
                f"轮询间隔必须是 1-{MAX_INTERVAL_MS} 之间的整数(毫秒)", field="interval_ms"
            )

        with self._edit_lock:
            self.state.set_interval_ms(interval_ms)
            self._persist()
        self.logger.info(f"轮询间隔已设置为 {interval_ms}ms")

    def apply_settings(self, settings: Settings):
        """用外部加载的设置替换当前规则（热加载使用，不回写文件）"""
        with self._edit_lock:
            self.state.replace_settings(settings)
        self.logger.info(f"规则已重新加载: {len(settings.rules)} 条")

    def _persist(self):
        if not self.store.save(self.state.settings()):
            self.logger.warning("设置未能保存，内存中的规则仍然有效")

    # ---- 监控开关 ----

    def start(self):
        self.state.set_monitoring(True)
        self.logger.info("监控已开启")

    def stop(self):
        self.state.set_monitoring(False)
        self.logger.info("监控已暂停")

    # ---- 只读访问 ----

    def rules(self) -> Tuple[Rule, ...]:
        return self.state.rules()

    def settings(self) -> Settings:
        return self.state.settings()

    def status(self) -> MonitorStatus:
        return self.state.status

    def is_monitoring(self) -> bool:
        return self.state.is_monitoring()
