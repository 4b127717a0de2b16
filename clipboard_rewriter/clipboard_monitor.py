"""
剪贴板监控器模块

监控循环的每个周期：读取 → 分类 → 比较 → 替换 → 写回 → 等待。

支持：
- 异步剪贴板访问，避免阻塞事件循环
- 非文本与超大内容跳过
- 基于最近写入值的回写抑制，避免处理自己写入的内容
- 写入失败有限次重试
- 周期超时时跳过错过的节拍而不是排队补跑
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .clipboard_adapter import ClipboardAdapter
from .clipboard_models import ContentKind, CycleOutcome, MonitorStatus
from .config import IDLE_TICK, WRITE_ATTEMPTS, WRITE_BACKOFF
from .content_classifier import ContentClassifier
from .exceptions import ClipboardReadError, ClipboardWriteError
from .logging_config import get_logger
from .rule_engine import RuleEngine
from .state import MonitorState
from .utils import preview_text


@dataclass
class MonitorStats:
    """监控统计信息"""
    cycles: int = 0
    clipboard_reads: int = 0
    read_failures: int = 0
    non_text_skips: int = 0
    too_large_skips: int = 0
    unchanged_skips: int = 0
    no_match: int = 0
    writes: int = 0
    write_failures: int = 0
    errors: int = 0


_STAT_FIELDS = {
    CycleOutcome.READ_FAILED: "read_failures",
    CycleOutcome.NON_TEXT: "non_text_skips",
    CycleOutcome.TOO_LARGE: "too_large_skips",
    CycleOutcome.UNCHANGED: "unchanged_skips",
    CycleOutcome.NO_MATCH: "no_match",
    CycleOutcome.WRITTEN: "writes",
    CycleOutcome.WRITE_FAILED: "write_failures",
}


class ClipboardMonitor:
    """异步剪贴板监控器

    监控开关、规则列表都从共享的 MonitorState 读取，控制端修改后
    最迟在下一个周期开始时生效。
    """

    def __init__(
        self,
        state: MonitorState,
        adapter: Optional[ClipboardAdapter] = None,
        engine: Optional[RuleEngine] = None,
        classifier: Optional[ContentClassifier] = None,
        idle_tick: float = IDLE_TICK,
    ):
        self.state = state
        self.adapter = adapter or ClipboardAdapter()
        self.engine = engine or RuleEngine()
        self.classifier = classifier or ContentClassifier()
        self.idle_tick = idle_tick
        self.logger = get_logger("Monitor")

        self.stats = MonitorStats()
        self.is_running = False
        self.consecutive_errors = 0
        self.last_error_time: Optional[datetime] = None
        self._shutdown: Optional[asyncio.Event] = None

    async def start(self):
        """运行监控循环，直到 shutdown() 或任务被取消"""
        self._shutdown = asyncio.Event()
        self.is_running = True
        loop = asyncio.get_running_loop()
        self.logger.info("剪贴板监控循环已启动")

        try:
            while not self._shutdown.is_set():
                if not self.state.is_monitoring():
                    await self._sleep(self.idle_tick)
                    continue

                cycle_start = loop.time()
                await self._safe_cycle()
                await self._sleep(self._next_delay(loop.time() - cycle_start))
        except asyncio.CancelledError:
            self.logger.info("监控已取消")
            raise
        finally:
            self.is_running = False
            self.logger.info("剪贴板监控循环已停止")

    def shutdown(self):
        """结束监控循环（与监控开关无关）"""
        if self._shutdown is not None:
            self._shutdown.set()

    def _next_delay(self, elapsed: float) -> float:
        """计算到下一个节拍的等待时间，超时的节拍直接跳过"""
        interval = self.state.interval
        if interval <= 0:
            return 0.0
        if elapsed <= interval:
            return interval - elapsed
        skipped = int(elapsed // interval)
        self.logger.debug(f"周期耗时 {elapsed:.3f}s，跳过 {skipped} 个节拍")
        return interval - (elapsed % interval)

    async def _sleep(self, delay: float):
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _safe_cycle(self):
        try:
            await self.run_cycle()
            self.consecutive_errors = 0
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stats.errors += 1
            self.consecutive_errors += 1
            self.last_error_time = datetime.now()
            if self.consecutive_errors <= 3:
                self.logger.warning(f"监控循环错误 ({self.consecutive_errors}/3): {e}")
            else:
                self.logger.error(f"连续监控错误过多: {e}", exc_info=True)

    async def run_cycle(self) -> CycleOutcome:
        """执行一个完整的监控周期"""
        if not self.state.is_monitoring():
            return CycleOutcome.IDLE

        self.stats.cycles += 1
        outcome = await self._process_clipboard()
        field_name = _STAT_FIELDS.get(outcome)
        if field_name:
            setattr(self.stats, field_name, getattr(self.stats, field_name) + 1)
        return outcome

    async def _process_clipboard(self) -> CycleOutcome:
        self.stats.clipboard_reads += 1
        try:
            content = await asyncio.to_thread(self.adapter.read)
        except ClipboardReadError as e:
            self.logger.warning(str(e))
            return CycleOutcome.READ_FAILED

        if not content.is_text:
            self.state.set_status(MonitorStatus.NON_TEXT)
            return CycleOutcome.NON_TEXT

        text = content.text
        kind = self.classifier.classify(text)
        if kind is ContentKind.NON_TEXT:
            self.state.set_status(MonitorStatus.NON_TEXT)
            return CycleOutcome.NON_TEXT
        if kind is ContentKind.TOO_LARGE:
            self.state.set_status(MonitorStatus.TOO_LARGE)
            return CycleOutcome.TOO_LARGE

        if self.state.is_unchanged(text):
            return CycleOutcome.UNCHANGED

        rules, version = self.state.rules_snapshot()
        started = time.perf_counter()
        if self.logger.isEnabledFor(logging.DEBUG):
            updated, hits = self.engine.trace(rules, text)
            for hit in hits:
                self.logger.debug(f"规则 {hit.index} 替换 {hit.count} 处")
        else:
            updated = self.engine.apply(rules, text)

        if updated == text:
            self.state.mark_seen(text, version)
            return CycleOutcome.NO_MATCH

        try:
            await self._write_clipboard(updated)
        except ClipboardWriteError as e:
            self.state.set_status(MonitorStatus.WRITE_FAILED)
            self.logger.error(f"写入剪贴板失败，已重试 {WRITE_ATTEMPTS} 次: {e}")
            return CycleOutcome.WRITE_FAILED

        self.state.record_write(updated)
        self.state.mark_seen(text, version)
        elapsed = time.perf_counter() - started
        self.logger.info(
            f"✅ 已替换剪贴板内容: {preview_text(text)} -> {preview_text(updated)} ({elapsed:.3f}s)"
        )
        return CycleOutcome.WRITTEN

    @retry(
        stop=stop_after_attempt(WRITE_ATTEMPTS),
        wait=wait_fixed(WRITE_BACKOFF),
        retry=retry_if_exception_type(ClipboardWriteError),
        before_sleep=before_sleep_log(logging.getLogger("ClipboardRewriter.Monitor.Retry"), logging.WARNING),
        reraise=True,
    )
    async def _write_clipboard(self, text: str):
        await asyncio.to_thread(self.adapter.write, text)

    def get_status(self) -> Dict[str, Any]:
        """获取监控状态快照"""
        last_write = self.state.last_write_time
        return {
            "running": self.is_running,
            "monitoring": self.state.is_monitoring(),
            "status": self.state.status.value,
            "rules": len(self.state.rules()),
            "interval": self.state.interval,
            "last_write_time": last_write.isoformat() if last_write else None,
            "consecutive_errors": self.consecutive_errors,
            "stats": asdict(self.stats),
        }
