"""Tests for the gifttt command line."""
import json

import pytest

from gifttt import __version__
from gifttt.cli import main, parse_arguments


@pytest.fixture
def cli(tmp_path):
    config = tmp_path / "config.toml"
    config.write_text('[clock]\nenabled = false\n')
    store = tmp_path / "vars.json"

    def run(*argv):
        return main([argv[0], "--config", str(config), "--store", str(store), *argv[1:]])

    run.store = store
    return run


def test_default_command_is_run():
    assert parse_arguments([]).command == "run"
    assert parse_arguments(["check"]).command == "check"


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_arguments(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_set_get_list(cli, capsys):
    assert cli("set", "door", '"open"') == 0
    assert cli("set", "count", "3") == 0
    assert cli("set", "label", "plain text") == 0
    capsys.readouterr()

    assert cli("get", "door") == 0
    assert json.loads(capsys.readouterr().out) == "open"
    assert cli("get", "label") == 0
    assert json.loads(capsys.readouterr().out) == "plain text"

    assert cli("list") == 0
    assert capsys.readouterr().out.split() == ["count", "door", "label"]

    stored = json.loads(cli.store.read_text())
    assert stored["var~count"] == '{"value":3}'


def test_get_undefined(cli, capsys):
    assert cli("get", "missing") == 1
    assert "undefined symbol: missing" in capsys.readouterr().err


def test_check(cli, tmp_path, capsys):
    rules = tmp_path / "rules"
    rules.mkdir()
    (rules / "good.rule").write_text('(log "fine")')
    (rules / "bad.rule").write_text("(log")

    assert cli("check", "--rules-dir", str(rules)) == 1
    out = capsys.readouterr().out
    assert "ok   good.rule" in out
    assert "FAIL" in out and "bad.rule" in out
    assert "1/2 rules parsed" in out

    (rules / "bad.rule").unlink()
    assert cli("check", "--rules-dir", str(rules)) == 0


def test_invalid_config(tmp_path, capsys):
    config = tmp_path / "config.toml"
    config.write_text("[clock]\ninterval = -5\n")
    assert main(["list", "--config", str(config)]) == 2
    assert "clock.interval" in capsys.readouterr().err
