#!/usr/bin/env python3
# gifttt/cli.py
"""
gifttt CLI entry point.

Sub-commands:
- run    boot the engine (rules + clock + dispatch loop) until SIGINT/SIGTERM
- check  parse every rule file and report the ones that fail
- get    print a persisted variable as JSON
- set    persist a variable without notifying a running engine
- list   print the names of all persisted variables
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from gifttt import __version__
from gifttt.config.config import load_config
from gifttt.core.exceptions import ConfigError, GiftttError
from gifttt.core.manager import RuleManager
from gifttt.core.rule import Rule
from gifttt.core.variables import DEFAULT_PREFIX, VariableManager
from gifttt.lang import LangError
from gifttt.log_config import setup_logging
from gifttt.storage.store import MemoryStore, open_store

# Project logger
logger = logging.getLogger("gifttt.cli")


# ----------------------------------------------------------
# CLI SETUP
# ----------------------------------------------------------
def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, default=None, help="Path to configuration file")
    common.add_argument("--store", type=str, default=None, help="Path to the variable store file")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(prog="gifttt", description="gifttt - reactive rule engine")
    parser.add_argument("--version", action="version", version=f"gifttt {__version__}")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", parents=[common], help="run the rule engine")
    run.add_argument("--rules-dir", type=str, default=None, help="Directory holding rule files")
    run.add_argument("--log-file", type=str, default=None, help="Also log to this file")

    check = sub.add_parser("check", parents=[common], help="parse rule files and report errors")
    check.add_argument("--rules-dir", type=str, default=None, help="Directory holding rule files")

    get = sub.add_parser("get", parents=[common], help="print a variable")
    get.add_argument("name")

    set_ = sub.add_parser("set", parents=[common], help="persist a variable")
    set_.add_argument("name")
    set_.add_argument("value", help="JSON value; anything else is stored as a string")

    sub.add_parser("list", parents=[common], help="list persisted variables")

    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["run"] + list(argv if argv is not None else sys.argv[1:]))
    return args


def _configure(args: argparse.Namespace) -> dict:
    config = load_config(args.config)
    if getattr(args, "rules_dir", None):
        config.setdefault("main", {})["rules_dir"] = args.rules_dir
    if args.store:
        config.setdefault("store", {})["path"] = args.store
    if getattr(args, "log_file", None):
        config.setdefault("log", {})["file"] = args.log_file
    return config


def _variables(config: dict) -> VariableManager:
    store_cfg = config.get("store", {})
    return VariableManager(open_store(store_cfg.get("path")), prefix=store_cfg.get("prefix", DEFAULT_PREFIX))


def _parse_value(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


# ----------------------------------------------------------
# COMMANDS
# ----------------------------------------------------------
def cmd_run(config: dict) -> int:
    logger.info(f"gifttt v{__version__} starting...")
    try:
        return asyncio.run(RuleManager.bootstrap_and_run(config))
    except KeyboardInterrupt:
        logger.info("gifttt interrupted by user (Ctrl+C).")
        return 0


def cmd_check(config: dict) -> int:
    main = config.get("main", {})
    variables = VariableManager(MemoryStore())
    mgr = RuleManager(variables, rules_dir=main.get("rules_dir", "."),
                      suffix=main.get("rule_suffix", ".rule"), clock_enabled=False)
    failures = 0
    paths = mgr.rule_files()
    for path in paths:
        try:
            rule = Rule.from_file(path, variables)
        except (OSError, LangError) as e:
            failures += 1
            print(f"FAIL {path}: {e}")
        else:
            print(f"ok   {rule.name}")
    print(f"{len(paths) - failures}/{len(paths)} rules parsed")
    return 1 if failures else 0


def cmd_get(config: dict, name: str) -> int:
    value = _variables(config).get(name)
    print(json.dumps(value))
    return 0


def cmd_set(config: dict, name: str, text: str) -> int:
    _variables(config).store_value(name, _parse_value(text))
    return 0


def cmd_list(config: dict) -> int:
    for name in _variables(config).stored_names():
        print(name)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI wrapper for `python -m gifttt` or the console_scripts entrypoint."""
    args = parse_arguments(argv)

    try:
        config = _configure(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    log_cfg = config.get("log", {})
    setup_logging(log_cfg.get("level"), log_cfg.get("file") or None, debug_mode=args.debug)

    try:
        if args.command == "run":
            return cmd_run(config)
        if args.command == "check":
            return cmd_check(config)
        if args.command == "get":
            return cmd_get(config, args.name)
        if args.command == "set":
            return cmd_set(config, args.name, args.value)
        if args.command == "list":
            return cmd_list(config)
    except GiftttError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
