"""
规则持久化模块

支持：
- 读取/保存设置文件（规则列表 + 轮询间隔，JSON格式）
- 损坏文件与单条无效规则的容错
- 原子写入，写入失败时保留原文件
- 设置文件热加载
"""

import contextlib
import hashlib
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .clipboard_models import Rule, Settings
from .config import DEFAULT_INTERVAL_MS, RuleModel, SettingsModel
from .exceptions import SettingsLoadError, SettingsSaveError
from .logging_config import get_logger

ReloadCallback = Callable[[Settings], None]


def _digest(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class SettingsFileHandler(FileSystemEventHandler):
    """设置文件变化监控处理器"""

    def __init__(self, store: "RuleStore"):
        self.store = store
        self.logger = get_logger("RuleStore.FileHandler")

    def on_modified(self, event):
        if not event.is_directory:
            self._handle(event.src_path)

    def on_created(self, event):
        if not event.is_directory:
            self._handle(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._handle(event.dest_path)

    def _handle(self, path: Union[str, bytes]):
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if os.path.abspath(path) != os.path.abspath(self.store.path):
            return
        self.store.reload_if_changed()


class RuleStore:
    """设置文件的读写入口"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = get_logger("RuleStore")
        self._save_lock = threading.Lock()
        self._digest: Optional[str] = None
        self.observer: Optional[Observer] = None
        self._reload_callback: Optional[ReloadCallback] = None

    def load(self) -> Settings:
        """读取设置文件，任何读取或解析问题都降级为空规则列表"""
        settings = self._load(problems=None)
        return settings if settings is not None else Settings()

    def validate(self) -> List[str]:
        """检查设置文件，返回发现的问题列表（不修改当前状态）"""
        problems: List[str] = []
        digest = self._digest
        self._load(problems=problems)
        self._digest = digest
        return problems

    def _warn(self, message: str, problems: Optional[List[str]]):
        self.logger.warning(message)
        if problems is not None:
            problems.append(message)

    def _read_json(self) -> Any:
        """读取并解析设置文件

        Raises:
            FileNotFoundError: 文件不存在
            SettingsLoadError: 文件无法读取或不是合法的 UTF-8 JSON
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise SettingsLoadError(f"无法读取设置文件 {self.path}: {e}", path=str(self.path)) from e

        self._digest = _digest(raw)
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SettingsLoadError(f"设置文件格式错误 {self.path}: {e}", path=str(self.path)) from e

    def _load(self, problems: Optional[List[str]]) -> Optional[Settings]:
        """读取设置文件，整个文件不可用时返回 None"""
        try:
            data = self._read_json()
        except FileNotFoundError:
            self._warn(f"设置文件不存在，使用默认设置: {self.path}", problems)
            return None
        except SettingsLoadError as e:
            self._warn(f"{e}，使用空规则列表", problems)
            return None

        settings = self._parse(data, problems)
        if settings is None:
            return None
        self.logger.info(
            f"设置加载成功: {self.path} "
            f"(规则: {len(settings.rules)}, 间隔: {settings.interval_ms}ms)"
        )
        return settings

    def _parse(self, data: Any, problems: Optional[List[str]]) -> Optional[Settings]:
        if not isinstance(data, dict):
            self._warn("设置文件顶层不是对象，使用空规则列表", problems)
            return None

        try:
            model = SettingsModel.model_validate(data)
        except ValidationError as e:
            self._warn(f"设置文件验证失败: {e}，使用空规则列表", problems)
            return None

        if "rules" in data and not isinstance(data["rules"], list):
            self._warn("设置文件中的 rules 不是列表，已忽略", problems)

        raw_interval = data.get("interval_ms")
        if raw_interval is None:
            self.logger.debug(f"未设置轮询间隔，使用默认值 {DEFAULT_INTERVAL_MS}ms")
        elif isinstance(raw_interval, bool) or raw_interval != model.interval_ms:
            self._warn(f"轮询间隔无效: {raw_interval!r}，使用 {model.interval_ms}ms", problems)

        rules = []
        for index, entry in enumerate(model.rules):
            try:
                rule_model = RuleModel.model_validate(entry)
            except ValidationError as e:
                self._warn(f"规则 {index} 格式无效，已忽略: {e.error_count()} 个错误", problems)
                continue

            rule = Rule(
                pattern=rule_model.pattern,
                replacement=rule_model.replacement,
                enabled=rule_model.enabled,
            )
            if rule.error:
                self._warn(f"规则 {index} 的正则表达式无效: {rule.pattern!r} ({rule.error})", problems)
            rules.append(rule)

        return Settings(rules=rules, interval_ms=model.interval_ms)

    def save(self, settings: Settings) -> bool:
        """保存设置，失败只记录日志并返回 False"""
        payload = json.dumps(settings.to_dict(), indent=2, ensure_ascii=False) + "\n"
        data = payload.encode("utf-8")

        with self._save_lock:
            try:
                self._write_atomic(data)
            except SettingsSaveError as e:
                self.logger.error(str(e))
                return False

        self.logger.debug(f"设置已保存: {self.path} (规则: {len(settings.rules)})")
        return True

    def _write_atomic(self, data: bytes):
        """写入同目录临时文件后替换目标文件

        Raises:
            SettingsSaveError: 任一步骤失败，目标文件保持原样
        """
        try:
            self._replace_file(data)
        except OSError as e:
            raise SettingsSaveError(f"保存设置失败 {self.path}: {e}", path=str(self.path)) from e

    def _replace_file(self, data: bytes):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o644)
            # 先记录摘要，热加载线程收到本次写入事件时据此跳过
            previous = self._digest
            self._digest = _digest(data)
            try:
                os.replace(tmp_path, self.path)
            except OSError:
                self._digest = previous
                raise
        except OSError:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise

    # ---- 热加载 ----

    def reload_if_changed(self) -> Optional[Settings]:
        """文件内容与上次读写不同时重新加载并通知回调

        文件整体无法使用（格式错误、顶层不是对象等）时保留当前规则，不通知回调。
        """
        try:
            raw = self.path.read_bytes()
        except OSError:
            return None
        if _digest(raw) == self._digest:
            return None

        self.logger.info(f"设置文件已修改: {self.path}")
        settings = self._load(problems=None)
        if settings is None:
            self.logger.warning("修改后的设置文件无法使用，继续使用当前规则")
            return None
        if self._reload_callback is not None:
            try:
                self._reload_callback(settings)
            except Exception as e:
                self.logger.error(f"设置重载回调执行失败: {e}")
        return settings

    def start_watching(self, callback: ReloadCallback):
        """启动设置文件监控"""
        if self.observer is not None:
            return

        self._reload_callback = callback
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.observer = Observer()
        self.observer.schedule(
            SettingsFileHandler(self),
            str(self.path.parent),
            recursive=False
        )
        self.observer.start()
        self.logger.info("设置文件热加载监控已启动")

    def stop_watching(self):
        """停止设置文件监控"""
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
            self.logger.info("设置文件监控已停止")
