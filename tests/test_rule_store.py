"""
规则持久化测试
"""

import json
import logging
import os

import pytest

from clipboard_rewriter.clipboard_models import Rule, Settings
from clipboard_rewriter.config import DEFAULT_INTERVAL_MS, MAX_INTERVAL_MS
from clipboard_rewriter.rule_engine import RuleEngine
from clipboard_rewriter.rule_store import RuleStore, SettingsFileHandler


class TestLoad:

    def test_missing_file_uses_defaults(self, store, caplog):
        with caplog.at_level(logging.WARNING):
            settings = store.load()
        assert settings.rules == []
        assert settings.interval_ms == DEFAULT_INTERVAL_MS
        assert "设置文件不存在" in caplog.text

    def test_load_rules(self, store, write_settings, mock_settings_data):
        write_settings(mock_settings_data)
        settings = store.load()

        assert [rule.pattern for rule in settings.rules] == ["foo", r"(\d+)", "["]
        assert [rule.enabled for rule in settings.rules] == [True, False, True]
        assert settings.rules[1].replacement == "#$1#"
        assert settings.interval_ms == 250

    def test_invalid_pattern_is_kept_but_marked(self, store, write_settings, mock_settings_data, caplog):
        write_settings(mock_settings_data)
        with caplog.at_level(logging.WARNING):
            settings = store.load()

        invalid = settings.rules[2]
        assert invalid.pattern == "["
        assert invalid.matcher is None
        assert invalid.error
        assert settings.rules[0].is_valid
        assert "规则 2 的正则表达式无效" in caplog.text

    def test_corrupt_json(self, store, write_settings):
        write_settings('{"rules": [')
        settings = store.load()
        assert settings.rules == []
        assert settings.interval_ms == DEFAULT_INTERVAL_MS

    def test_top_level_not_object(self, store, write_settings):
        write_settings([{"pattern": "a"}])
        assert store.load().rules == []

    def test_rules_not_a_list(self, store, write_settings):
        write_settings({"rules": {"pattern": "a"}, "interval_ms": 300})
        settings = store.load()
        assert settings.rules == []
        assert settings.interval_ms == 300

    def test_malformed_entry_dropped(self, store, write_settings):
        write_settings({
            "rules": [
                {"pattern": "a", "replacement": "b", "enabled": True},
                {"replacement": "no pattern"},
                "not an object",
                {"pattern": 5},
                {"pattern": "c", "replacement": "d", "enabled": True},
            ]
        })
        settings = store.load()
        assert [rule.pattern for rule in settings.rules] == ["a", "c"]

    def test_missing_fields_use_defaults(self, store, write_settings):
        write_settings({"rules": [{"pattern": "x"}]})
        rule = store.load().rules[0]
        assert rule.replacement == ""
        assert rule.enabled is False

    def test_unknown_fields_ignored(self, store, write_settings):
        write_settings({"rules": [{"pattern": "x", "enabled": True, "note": "hi"}], "theme": "dark"})
        settings = store.load()
        assert settings.rules == [Rule(pattern="x", replacement="", enabled=True)]

    @pytest.mark.parametrize("value", [0, -5, 0.5, "abc", None, True, 1.5e400, MAX_INTERVAL_MS + 1])
    def test_invalid_interval_falls_back(self, store, write_settings, value):
        write_settings({"rules": [], "interval_ms": value})
        assert store.load().interval_ms == DEFAULT_INTERVAL_MS

    def test_huge_integer_interval_falls_back(self, store, write_settings):
        write_settings('{"rules": [], "interval_ms": ' + "9" * 400 + "}")
        assert store.load().interval_ms == DEFAULT_INTERVAL_MS

    def test_interval_upper_bound_accepted(self, store, write_settings):
        write_settings({"rules": [], "interval_ms": MAX_INTERVAL_MS})
        assert store.load().interval_ms == MAX_INTERVAL_MS

    def test_oversized_group_reference(self, store, write_settings):
        write_settings({"rules": [{"pattern": "(a)", "replacement": "<$" + "1" * 5000 + ">", "enabled": True}]})
        settings = store.load()

        assert len(settings.rules) == 1
        assert settings.rules[0].is_valid
        assert RuleEngine().apply(settings.rules, "xa") == "x<>"

    def test_missing_interval_falls_back(self, store, write_settings):
        write_settings({"rules": []})
        assert store.load().interval_ms == DEFAULT_INTERVAL_MS


class TestSave:

    def test_round_trip(self, store):
        original = Settings(
            rules=[
                Rule(pattern=r"(\d+)", replacement="#$1#", enabled=True),
                Rule(pattern="[", replacement="x", enabled=False),
                Rule(pattern="中文", replacement="", enabled=True),
            ],
            interval_ms=750,
        )
        assert store.save(original) is True

        loaded = RuleStore(store.path).load()
        assert loaded.rules == original.rules
        assert loaded.interval_ms == 750
        assert loaded.rules[1].error

    def test_file_format(self, store):
        store.save(Settings(rules=[Rule(pattern="é", replacement="e", enabled=True)], interval_ms=300))
        text = store.path.read_text(encoding="utf-8")

        assert text.endswith("\n")
        assert '\n  "rules": [' in text
        assert '"é"' in text
        assert json.loads(text) == {
            "rules": [{"pattern": "é", "replacement": "e", "enabled": True}],
            "interval_ms": 300,
        }

    def test_creates_parent_directory(self, tmp_path):
        store = RuleStore(tmp_path / "nested" / "dir" / "settings.json")
        assert store.save(Settings()) is True
        assert store.path.exists()

    def test_no_temp_files_left(self, store):
        store.save(Settings(rules=[Rule(pattern="a", replacement="b")]))
        assert os.listdir(store.path.parent) == [store.path.name]

    def test_failed_save_keeps_original(self, store, write_settings, mock_settings_data, monkeypatch, caplog):
        write_settings(mock_settings_data)
        before = store.path.read_bytes()

        def broken_replace(src, dst):
            raise OSError("磁盘已满")

        monkeypatch.setattr("clipboard_rewriter.rule_store.os.replace", broken_replace)
        with caplog.at_level(logging.ERROR):
            ok = store.save(Settings(rules=[Rule(pattern="new", replacement="x")]))

        assert ok is False
        assert store.path.read_bytes() == before
        assert os.listdir(store.path.parent) == [store.path.name]
        assert "保存设置失败" in caplog.text


class TestValidate:

    def test_valid_file(self, store, write_settings):
        write_settings({"rules": [{"pattern": "a", "replacement": "b", "enabled": True}], "interval_ms": 100})
        assert store.validate() == []

    def test_reports_problems(self, store, write_settings):
        write_settings({"rules": [{"pattern": "("}, {"enabled": True}], "interval_ms": -1})
        problems = store.validate()
        assert len(problems) == 3
        assert any("轮询间隔无效" in p for p in problems)
        assert any("规则 0 的正则表达式无效" in p for p in problems)
        assert any("规则 1 格式无效" in p for p in problems)

    def test_missing_file(self, store):
        problems = store.validate()
        assert len(problems) == 1
        assert "设置文件不存在" in problems[0]


class TestReload:

    def test_ignores_own_writes(self, store):
        store.save(Settings(rules=[Rule(pattern="a", replacement="b")]))
        assert store.reload_if_changed() is None

    def test_ignores_unchanged_file(self, store, write_settings, mock_settings_data):
        write_settings(mock_settings_data)
        store.load()
        assert store.reload_if_changed() is None

    def test_detects_external_edit(self, store, write_settings):
        received = []
        store._reload_callback = received.append
        store.save(Settings())

        write_settings({"rules": [{"pattern": "x", "replacement": "y", "enabled": True}], "interval_ms": 900})
        settings = store.reload_if_changed()

        assert settings is not None
        assert settings.interval_ms == 900
        assert received == [settings]
        # 已经处理过的内容不再重复通知
        assert store.reload_if_changed() is None
        assert len(received) == 1

    @pytest.mark.parametrize("content", ['{"rules": [', "[]", '"text"'])
    def test_unusable_edit_keeps_current_rules(self, store, write_settings, content, caplog):
        received = []
        store._reload_callback = received.append
        store.save(Settings(rules=[Rule(pattern="a", replacement="b")]))

        write_settings(content)
        with caplog.at_level(logging.WARNING):
            assert store.reload_if_changed() is None
        assert received == []
        assert "继续使用当前规则" in caplog.text

        # 修正后的文件照常重新加载
        write_settings({"rules": [{"pattern": "x", "replacement": "y", "enabled": True}]})
        settings = store.reload_if_changed()
        assert received == [settings]
        assert [rule.pattern for rule in settings.rules] == ["x"]

    def test_callback_errors_are_logged(self, store, write_settings, caplog):
        def broken(settings):
            raise RuntimeError("boom")

        store._reload_callback = broken
        write_settings({"rules": []})
        with caplog.at_level(logging.ERROR):
            assert store.reload_if_changed() is not None
        assert "设置重载回调执行失败" in caplog.text

    def test_handler_filters_other_files(self, store, write_settings, tmp_path):
        calls = []
        store.reload_if_changed = lambda: calls.append(True)
        handler = SettingsFileHandler(store)

        handler._handle(str(tmp_path / "other.json"))
        assert calls == []
        handler._handle(str(store.path))
        assert calls == [True]

    def test_start_and_stop_watching(self, store):
        store.start_watching(lambda settings: None)
        assert store.observer is not None
        store.stop_watching()
        assert store.observer is None
