"""主程序模块

支持：
- CLI界面
- 优雅关闭
- 信号处理（SIGUSR1 切换监控开关）
- 设置文件热加载
- 状态报告
"""

import asyncio
import signal
import sys
import logging
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from .__version__ import __version__
from .clipboard_monitor import ClipboardMonitor
from .config import AppConfig, LOG_LEVELS, default_settings_path
from .console import ConsoleNotifier
from .content_classifier import ContentClassifier
from .controller import RuleController
from .exceptions import ClipboardRewriterError
from .logging_config import setup_logging
from .rule_engine import RuleEngine
from .rule_store import RuleStore
from .state import MonitorState


class ClipboardRewriterApp:
    """主应用程序类"""

    def __init__(self, config: AppConfig, console: Optional[ConsoleNotifier] = None):
        self.config = config
        self.console = console or ConsoleNotifier()
        self.logger: Optional[logging.Logger] = None
        self.store: Optional[RuleStore] = None
        self.state: Optional[MonitorState] = None
        self.controller: Optional[RuleController] = None
        self.monitor: Optional[ClipboardMonitor] = None
        self.shutdown_event: Optional[asyncio.Event] = None
        self.status_report_interval = 300

    def initialize(self):
        """初始化应用程序"""
        self.logger = setup_logging(self.config.log_level, self.config.log_file)
        self.store = RuleStore(self.config.settings_path)
        self.state = MonitorState(self.store.load())
        self.controller = RuleController(self.state, self.store)
        self.monitor = ClipboardMonitor(
            self.state,
            classifier=ContentClassifier(self.config.max_text_bytes),
            idle_tick=self.config.idle_tick,
        )
        self.logger.info("应用程序初始化完成")

    async def start(self):
        """启动应用程序，直到收到关闭信号"""
        self.shutdown_event = asyncio.Event()
        self.initialize()

        if self.config.watch_settings:
            self.store.start_watching(self.controller.apply_settings)
        if not self.config.start_paused:
            self.controller.start()

        self.console.show_welcome(
            str(self.config.settings_path),
            len(self.state.rules()),
            self.state.interval,
            self.state.is_monitoring(),
        )
        self._setup_signal_handlers()

        monitor_task = asyncio.create_task(self.monitor.start())
        status_task = asyncio.create_task(self._status_reporter())
        try:
            await self.shutdown_event.wait()
            self.logger.info("收到关闭信号，正在优雅关闭...")
        finally:
            self.monitor.shutdown()
            try:
                await asyncio.wait_for(monitor_task, timeout=5.0)
            except asyncio.TimeoutError:
                self.logger.warning("监控任务未能在超时时间内停止")
                monitor_task.cancel()
            status_task.cancel()
            try:
                await status_task
            except asyncio.CancelledError:
                pass
            self.cleanup()

    def cleanup(self):
        """清理所有资源"""
        if self.store is not None:
            self.store.stop_watching()
        if self.monitor is not None:
            self.console.show_farewell(self.monitor.get_status()["stats"])
        if self.logger:
            self.logger.info("应用程序资源清理完成")

    def request_shutdown(self):
        if self.shutdown_event is not None:
            self.shutdown_event.set()

    def toggle_monitoring(self):
        if self.state.is_monitoring():
            self.controller.stop()
        else:
            self.controller.start()

    def _setup_signal_handlers(self):
        """设置信号处理器"""
        loop = asyncio.get_running_loop()
        handlers = [(signal.SIGINT, self.request_shutdown), (signal.SIGTERM, self.request_shutdown)]
        if hasattr(signal, 'SIGUSR1'):
            handlers.append((signal.SIGUSR1, self.toggle_monitoring))

        for signum, handler in handlers:
            try:
                loop.add_signal_handler(signum, handler)
            except (NotImplementedError, RuntimeError):
                # Windows 事件循环不支持 add_signal_handler
                signal.signal(signum, lambda s, f, h=handler: loop.call_soon_threadsafe(h))

    async def _status_reporter(self):
        """状态报告器"""
        try:
            while True:
                await asyncio.sleep(self.status_report_interval)
                status = self.monitor.get_status()
                stats = status['stats']
                self.logger.info(
                    f"状态报告 - "
                    f"状态: {status['status']}, "
                    f"周期: {stats['cycles']}, "
                    f"替换: {stats['writes']}, "
                    f"写入失败: {stats['write_failures']}, "
                    f"读取失败: {stats['read_failures']}"
                )
        except asyncio.CancelledError:
            pass


def _open_controller(settings_path: Path) -> RuleController:
    store = RuleStore(settings_path)
    return RuleController(MonitorState(store.load()), store)


def _fail(message: str):
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


# CLI命令
@click.group()
@click.version_option(version=__version__)
@click.option('--settings', '-s', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='设置文件路径（默认 ./settings.json）')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False),
              default=None, help='日志级别（start 默认 INFO，其余命令默认 WARNING）')
@click.pass_context
def cli(ctx: click.Context, settings: Optional[Path], log_level: Optional[str]):
    """剪贴板规则替换工具"""
    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings or default_settings_path()
    ctx.obj['log_level'] = log_level.upper() if log_level else None


@cli.command()
@click.option('--log-file', type=click.Path(dir_okay=False), default=None, help='日志文件路径')
@click.option('--watch/--no-watch', default=True, help='监控设置文件变化并自动重载规则')
@click.option('--paused', is_flag=True, help='启动后暂不处理剪贴板（SIGUSR1 切换）')
@click.pass_context
def start(ctx: click.Context, log_file: Optional[str], watch: bool, paused: bool):
    """启动剪贴板监控"""
    try:
        config = AppConfig(
            settings_path=ctx.obj['settings'],
            log_level=ctx.obj['log_level'] or 'INFO',
            log_file=log_file,
            watch_settings=watch,
            start_paused=paused,
        )
    except ValidationError as e:
        _fail(f"配置错误: {e}")

    app = ClipboardRewriterApp(config)
    try:
        asyncio.run(app.start())
    except KeyboardInterrupt:
        click.echo("\n监控已停止")


@cli.group()
@click.pass_context
def rules(ctx: click.Context):
    """管理替换规则"""
    setup_logging(ctx.obj['log_level'] or 'WARNING')


@rules.command('list')
@click.pass_context
def list_rules(ctx: click.Context):
    """列出所有规则"""
    controller = _open_controller(ctx.obj['settings'])
    ConsoleNotifier().show_rules(controller.rules())


@rules.command('add')
@click.argument('pattern')
@click.argument('replacement')
@click.pass_context
def add_rule(ctx: click.Context, pattern: str, replacement: str):
    """添加规则（正则表达式 + 替换模板，支持 $1、${name}）"""
    controller = _open_controller(ctx.obj['settings'])
    try:
        rule = controller.add_rule(pattern, replacement)
    except ClipboardRewriterError as e:
        _fail(str(e))
    click.echo(f"✅ 已添加规则 {len(controller.rules()) - 1}: {rule.describe()}")


@rules.command('enable')
@click.argument('index', type=int)
@click.pass_context
def enable_rule(ctx: click.Context, index: int):
    """启用规则"""
    controller = _open_controller(ctx.obj['settings'])
    try:
        rule = controller.set_enabled(index, True)
    except ClipboardRewriterError as e:
        _fail(str(e))
    click.echo(f"✅ 已启用规则 {index}: {rule.describe()}")


@rules.command('disable')
@click.argument('index', type=int)
@click.pass_context
def disable_rule(ctx: click.Context, index: int):
    """停用规则"""
    controller = _open_controller(ctx.obj['settings'])
    try:
        rule = controller.set_enabled(index, False)
    except ClipboardRewriterError as e:
        _fail(str(e))
    click.echo(f"✅ 已停用规则 {index}: {rule.describe()}")


@rules.command('delete')
@click.argument('index', type=int)
@click.pass_context
def delete_rule(ctx: click.Context, index: int):
    """删除规则"""
    controller = _open_controller(ctx.obj['settings'])
    try:
        rule = controller.delete_rule(index)
    except ClipboardRewriterError as e:
        _fail(str(e))
    click.echo(f"✅ 已删除规则 {index}: {rule.describe()}")


@rules.command('test')
@click.argument('text')
@click.pass_context
def test_rules(ctx: click.Context, text: str):
    """用当前规则处理一段文本（不访问剪贴板）"""
    controller = _open_controller(ctx.obj['settings'])
    result, hits = RuleEngine().trace(controller.rules(), text)
    for hit in hits:
        click.echo(f"规则 {hit.index}: 替换 {hit.count} 处")
    if not hits:
        click.echo("没有规则匹配")
    click.echo(result)


@cli.command()
@click.argument('interval_ms', type=int)
@click.pass_context
def interval(ctx: click.Context, interval_ms: int):
    """设置轮询间隔（毫秒）"""
    setup_logging(ctx.obj['log_level'] or 'WARNING')
    controller = _open_controller(ctx.obj['settings'])
    try:
        controller.set_interval(interval_ms)
    except ClipboardRewriterError as e:
        _fail(str(e))
    click.echo(f"✅ 轮询间隔已设置为 {interval_ms}ms")


@cli.command('validate-config')
@click.pass_context
def validate_config(ctx: click.Context):
    """验证设置文件"""
    setup_logging(ctx.obj['log_level'] or 'ERROR')
    settings_path = ctx.obj['settings']
    store = RuleStore(settings_path)
    problems = store.validate()
    if problems:
        click.echo(f"❌ 设置文件存在问题: {settings_path}", err=True)
        for problem in problems:
            click.echo(f"   - {problem}", err=True)
        sys.exit(1)

    settings = store.load()
    enabled = sum(1 for rule in settings.rules if rule.enabled)
    click.echo(f"✅ 设置文件验证通过: {settings_path}")
    click.echo(f"   - 规则数量: {len(settings.rules)} (启用 {enabled})")
    click.echo(f"   - 轮询间隔: {settings.interval_ms}ms")


if __name__ == "__main__":
    cli()
