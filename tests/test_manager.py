"""Tests for Rule loading and RuleManager dispatch."""
import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from conftest import wait_idle
from gifttt.core.events import ChangeEvent
from gifttt.core.manager import RuleManager
from gifttt.core.rule import Rule
from gifttt.lang import ParseError
from gifttt.storage.store import JsonFileStore


def write_rules(path, **rules):
    for name, source in rules.items():
        (path / f"{name}.rule").write_text(source)


class TestRule:
    def test_parse_failure(self, variables):
        with pytest.raises(ParseError, match="broken.rule"):
            Rule("broken.rule", "(set x", variables)

    def test_from_file_uses_basename(self, tmp_path, variables):
        write_rules(tmp_path, hello='(log "hi")')
        rule = Rule.from_file(str(tmp_path / "hello.rule"), variables)
        assert rule.name == "hello.rule"

    @pytest.mark.asyncio
    async def test_run_is_repeatable(self, store, variables, recorder):
        variables.store_value("n", 0)
        rule = Rule("inc.rule", "(set n (+ n 1))", variables)
        await rule.run()
        await rule.run()
        assert variables.get("n") == 2
        assert recorder.names == ["n", "n"]


class TestLoad:
    def test_loads_in_name_order(self, tmp_path, variables):
        write_rules(tmp_path, b='(log "b")', a='(log "a")')
        (tmp_path / "notes.txt").write_text("(log \"ignored\")")
        (tmp_path / "dir.rule").mkdir()

        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        assert mgr.load() == 2
        assert [r.name for r in mgr.rules] == ["a.rule", "b.rule"]

    def test_bad_rule_is_skipped(self, tmp_path, variables, caplog):
        write_rules(tmp_path, good='(log "ok")', bad="(log")
        caplog.set_level(logging.WARNING, logger="gifttt.core.manager")

        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        assert mgr.load() == 1
        assert [r.name for r in mgr.rules] == ["good.rule"]
        assert any("error parsing 'bad.rule'" in r.message for r in caplog.records)

    def test_unreadable_rule_is_skipped(self, tmp_path, variables, caplog, monkeypatch):
        write_rules(tmp_path, locked='(log "x")', open='(log "y")')
        caplog.set_level(logging.WARNING, logger="gifttt.core.manager")
        from_file = Rule.from_file

        def failing_from_file(path, variables):
            if path.endswith("locked.rule"):
                raise PermissionError(13, "Permission denied", path)
            return from_file(path, variables)

        monkeypatch.setattr(Rule, "from_file", failing_from_file)
        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        assert mgr.load() == 1
        assert [r.name for r in mgr.rules] == ["open.rule"]
        assert any("error opening 'locked.rule'" in r.message for r in caplog.records)

    def test_custom_suffix(self, tmp_path, variables):
        (tmp_path / "one.lisp").write_text("1")
        write_rules(tmp_path, two="2")
        mgr = RuleManager(variables, rules_dir=str(tmp_path), suffix=".lisp", clock_enabled=False)
        mgr.load()
        assert [r.name for r in mgr.rules] == ["one.lisp"]

    def test_missing_directory(self, tmp_path, variables):
        mgr = RuleManager(variables, rules_dir=str(tmp_path / "nope"), clock_enabled=False)
        assert mgr.load() == 0


class TestDispatch:
    @pytest.mark.asyncio
    async def test_failing_rule_does_not_stop_batch(self, tmp_path, variables, caplog):
        write_rules(tmp_path, a='(log "a ran")', b='(error "boom")', c='(log "c ran")')
        caplog.set_level(logging.INFO)

        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        mgr.load()
        await mgr.run_batch(ChangeEvent("x", 1))

        messages = [r.message for r in caplog.records]
        assert "a ran" in messages and "c ran" in messages
        assert messages.index("a ran") < messages.index("c ran")
        assert any(m.startswith("error in 'b.rule'") and "boom" in m for m in messages)

    @pytest.mark.asyncio
    async def test_undefined_variable_is_reported(self, tmp_path, variables, caplog):
        write_rules(tmp_path, a="(if (== door \"open\") (log \"x\"))")
        caplog.set_level(logging.ERROR, logger="gifttt.core.manager")

        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        mgr.load()
        await mgr.run_batch()
        assert any("undefined symbol: door" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_cascade_until_fixed_point(self, tmp_path, variables):
        write_rules(tmp_path, count="(if (< counter 3) (set counter (+ counter 1)))")
        variables.store_value("counter", 0)

        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        mgr.run_batch = AsyncMock(wraps=mgr.run_batch)
        await mgr.start()
        try:
            assert await variables.set("counter", 1) is True
            await wait_idle(mgr)
        finally:
            await mgr.stop()

        assert variables.get("counter") == 3
        seen = [c.args[0] for c in mgr.run_batch.await_args_list]
        assert seen == [ChangeEvent("counter", 1), ChangeEvent("counter", 2), ChangeEvent("counter", 3)]

    @pytest.mark.asyncio
    async def test_rule_writes_are_seen_by_later_rules(self, tmp_path, variables):
        write_rules(
            tmp_path,
            a="(if (== trigger 1) (set mirrored 1))",
            b="(if (== mirrored 1) (set done true))",
        )
        variables.store_value("mirrored", 0)
        variables.store_value("done", False)

        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        await mgr.start()
        try:
            await variables.set("trigger", 1)
            await wait_idle(mgr)
        finally:
            await mgr.stop()

        assert variables.get("done") is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit, expected", [(0, 3), (1, 1), (2, 2)])
    async def test_batch_concurrency_limit(self, variables, limit, expected):
        mgr = RuleManager(variables, clock_enabled=False, max_concurrent_batches=limit)
        active = 0
        peak = 0

        async def slow_rules(event):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1

        mgr._run_rules = slow_rules
        for i in range(3):
            mgr._spawn_batch(ChangeEvent("x", i))
        await wait_idle(mgr)
        assert peak == expected

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_batches(self, tmp_path, variables):
        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)

        async def hang(event):
            await asyncio.sleep(60)

        mgr._run_rules = hang
        await mgr.start()
        task = mgr._spawn_batch(ChangeEvent("x", 1))
        await asyncio.sleep(0.01)
        assert mgr.in_flight == 1

        await mgr.stop()
        assert task.cancelled()
        assert mgr.in_flight == 0

    @pytest.mark.asyncio
    async def test_run_forever_returns_after_stop(self, tmp_path, variables):
        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        runner = asyncio.create_task(mgr.run_forever())
        await asyncio.sleep(0.01)
        await mgr.stop()
        await asyncio.wait_for(runner, 1)


    @pytest.mark.asyncio
    async def test_request_stop_keeps_one_task(self, tmp_path, variables):
        mgr = RuleManager(variables, rules_dir=str(tmp_path), clock_enabled=False)
        runner = asyncio.create_task(mgr.run_forever())
        await asyncio.sleep(0.01)

        task = mgr.request_stop()
        assert mgr.request_stop() is task
        await asyncio.wait_for(runner, 1)
        await task
        assert task.done() and not task.cancelled()


class TestFromConfig:
    def test_builds_from_config(self, tmp_path):
        config = {
            "main": {"rules_dir": str(tmp_path), "rule_suffix": ".r"},
            "store": {"path": str(tmp_path / "vars.json"), "prefix": "v/"},
            "clock": {"enabled": False, "interval": 0.5},
            "dispatch": {"max_concurrent_batches": 2},
        }
        mgr = RuleManager.from_config(config)
        assert isinstance(mgr.variables.store, JsonFileStore)
        assert mgr.variables.prefix == "v/"
        assert mgr.rules_dir == str(tmp_path)
        assert mgr.suffix == ".r"
        assert mgr.clock is None

    def test_clock_enabled_by_default(self, store):
        mgr = RuleManager.from_config({"clock": {"interval": 0.25}}, store=store)
        assert mgr.clock is not None
        assert mgr.clock.interval == 0.25
        assert mgr.variables.store is store
