"""
测试配置和共享工具
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from clipboard_rewriter.clipboard_models import ClipboardContent, ReadKind, Rule, Settings
from clipboard_rewriter.clipboard_monitor import ClipboardMonitor
from clipboard_rewriter.controller import RuleController
from clipboard_rewriter.exceptions import ClipboardWriteError
from clipboard_rewriter.logging_config import APP_LOGGER_NAME
from clipboard_rewriter.rule_store import RuleStore
from clipboard_rewriter.state import MonitorState


class MockClipboard:
    """模拟剪贴板，接口与 ClipboardAdapter 一致"""

    def __init__(self, text: str = ""):
        self.content = ClipboardContent(text=text)
        self.writes: List[str] = []
        self.read_count = 0
        self.write_attempts = 0
        self.read_error: Optional[Exception] = None
        self.failing_writes = 0

    def set_text(self, text: str):
        self.content = ClipboardContent(text=text)

    def set_non_text(self):
        self.content = ClipboardContent(text="", kind=ReadKind.NON_TEXT)

    def read(self) -> ClipboardContent:
        self.read_count += 1
        if self.read_error is not None:
            raise self.read_error
        return self.content

    def write(self, text: str):
        self.write_attempts += 1
        if self.failing_writes > 0:
            self.failing_writes -= 1
            raise ClipboardWriteError("模拟写入失败", content_length=len(text))
        self.writes.append(text)
        self.content = ClipboardContent(text=text)


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    """临时设置文件路径（文件尚不存在）"""
    return tmp_path / "settings.json"


@pytest.fixture
def mock_settings_data() -> Dict[str, Any]:
    """模拟设置文件内容"""
    return {
        "rules": [
            {"pattern": "foo", "replacement": "bar", "enabled": True},
            {"pattern": r"(\d+)", "replacement": "#$1#", "enabled": False},
            {"pattern": "[", "replacement": "x", "enabled": True},
        ],
        "interval_ms": 250,
    }


@pytest.fixture
def write_settings(settings_path: Path):
    """把字典或原始字符串写入临时设置文件"""
    def _write(data: Any) -> Path:
        if isinstance(data, str):
            settings_path.write_text(data, encoding="utf-8")
        else:
            settings_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return settings_path
    return _write


@pytest.fixture
def store(settings_path: Path) -> RuleStore:
    store = RuleStore(settings_path)
    yield store
    store.stop_watching()


@pytest.fixture
def clipboard() -> MockClipboard:
    return MockClipboard()


@pytest.fixture
def make_monitor(clipboard: MockClipboard):
    """按规则列表创建已开启监控的 ClipboardMonitor"""
    def _make(rules: Optional[List[Rule]] = None, interval_ms: int = 10, monitoring: bool = True,
              **kwargs) -> ClipboardMonitor:
        state = MonitorState(Settings(rules=list(rules or []), interval_ms=interval_ms))
        if monitoring:
            state.set_monitoring(True)
        return ClipboardMonitor(state, adapter=clipboard, idle_tick=0.01, **kwargs)
    return _make


@pytest.fixture
def controller(store: RuleStore) -> RuleController:
    return RuleController(MonitorState(store.load()), store)


@pytest.fixture(autouse=True)
def reset_app_logger():
    """命令行测试会配置应用日志记录器，每个测试后还原"""
    yield
    logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
