"""
控制台输出模块

负责欢迎信息、规则列表和最终统计的彩色输出。
"""

import sys
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from colorama import Fore, Style, init

from .clipboard_models import Rule

init()


class ConsoleNotifier:
    """简化的控制台通知器"""

    def __init__(self, use_colors: Optional[bool] = None):
        if use_colors is None:
            use_colors = sys.stdout.isatty()
        self.use_colors = use_colors

    def _get_timestamp(self) -> str:
        return datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    def _truncate(self, text: str, limit: int = 60) -> str:
        return text if len(text) <= limit else text[:limit - 3] + '...'

    def _color(self, color: str, text: str) -> str:
        return f"{color}{text}{Style.RESET_ALL}" if self.use_colors else text

    def show_welcome(self, settings_path: str, rule_count: int, interval: float, monitoring: bool):
        lines = [
            "剪贴板规则替换监控已启动!",
            f"设置文件: {settings_path}",
            f"替换规则: {rule_count} 条",
            f"轮询间隔: {interval}秒",
            f"监控状态: {'运行中' if monitoring else '已暂停'}",
            "使用方法:",
            "   复制文本到剪贴板 → 按规则顺序替换并写回剪贴板",
            "   clipboard-rewriter rules add PATTERN REPLACEMENT → 添加规则",
            "按Ctrl+C停止监控",
        ]
        border = '=' * 60
        print(self._color(Fore.GREEN, f"\n{border}"))
        for line in lines:
            print(self._color(Fore.GREEN, line))
        print(self._color(Fore.GREEN, f"{border}\n"))

    def format_rule(self, index: int, rule: Rule) -> str:
        mark = "[x]" if rule.enabled else "[ ]"
        text = f"{index:>3} {mark} {self._truncate(rule.pattern)} -> {self._truncate(rule.replacement)}"
        if rule.error:
            return self._color(Fore.RED, f"{text}  (无效: {rule.error})")
        if not rule.enabled:
            return self._color(Fore.YELLOW, text)
        return text

    def show_rules(self, rules: Iterable[Rule]):
        rules = list(rules)
        if not rules:
            print(self._color(Fore.YELLOW, "暂无替换规则"))
            return
        print(self._color(Fore.BLUE, f"📌 替换规则 ({len(rules)})"))
        for index, rule in enumerate(rules):
            print(self.format_rule(index, rule))

    def show_farewell(self, stats: Dict[str, Any]):
        print(self._color(Fore.BLUE, "\n📊 最终统计"))
        print(self._color(Fore.BLUE, '─' * 40))
        print(f"监控周期: {stats.get('cycles', 0)}")
        print(self._color(Fore.GREEN, f"成功替换: {stats.get('writes', 0)}"))
        print(self._color(Fore.RED, f"写入失败: {stats.get('write_failures', 0)}"))
        print(self._color(Fore.YELLOW, f"非文本跳过: {stats.get('non_text_skips', 0)}"))
        print(self._color(Fore.YELLOW, f"超大跳过: {stats.get('too_large_skips', 0)}"))
        print(f"结束时间: {self._get_timestamp()}")
