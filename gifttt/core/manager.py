from __future__ import annotations
import asyncio
import logging
import os
import signal
from typing import Any, Dict, List, Optional, Set

from gifttt.lang import LangError
from gifttt.storage.store import Store, open_store
from .clock import Clock
from .events import ChangeEvent
from .rule import Rule
from .variables import DEFAULT_PREFIX, VariableManager

logger = logging.getLogger("gifttt.core.manager")

DEFAULT_RULE_SUFFIX = ".rule"


class RuleManager:
    """RuleManager loads rules and re-runs all of them on every variable change."""

    def __init__(self, variables: VariableManager, *, rules_dir: str = ".",
                 suffix: str = DEFAULT_RULE_SUFFIX, clock_enabled: bool = True,
                 clock_interval: float = 1.0, max_concurrent_batches: int = 0):
        self.variables = variables
        self.rules_dir = rules_dir
        self.suffix = suffix
        self.rules: List[Rule] = []
        self.clock: Optional[Clock] = Clock(variables, interval=clock_interval) if clock_enabled else None
        self._batch_limit = asyncio.Semaphore(max_concurrent_batches) if max_concurrent_batches > 0 else None
        self._batches: Set[asyncio.Task] = set()
        self._dispatcher: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None
        self._run_event: Optional[asyncio.Event] = None
        self._loaded = False
        self._started = False

    @property
    def in_flight(self) -> int:
        """Number of rule batches not yet finished."""
        return len(self._batches)

    # ---------- LOAD ----------
    def rule_files(self) -> List[str]:
        """Paths of the ``*<suffix>`` files in the rules directory, in name order."""
        try:
            names = sorted(os.listdir(self.rules_dir))
        except OSError as e:
            logger.warning(f"RuleManager: cannot list rules directory '{self.rules_dir}': {e}")
            return []
        paths = (os.path.join(self.rules_dir, n) for n in names if n.endswith(self.suffix))
        return [p for p in paths if os.path.isfile(p)]

    def load(self) -> int:
        """Build one Rule per rule file; unreadable or unparsable files are skipped."""
        self.rules = []
        for path in self.rule_files():
            name = os.path.basename(path)
            try:
                rule = Rule.from_file(path, self.variables)
            except OSError as e:
                logger.warning(f"error opening '{name}': {e}")
                continue
            except LangError as e:
                logger.warning(f"error parsing '{name}': {e}")
                continue
            self.rules.append(rule)

        self._loaded = True
        logger.info(f"loaded {len(self.rules)} rules")
        return len(self.rules)

    # ---------- DISPATCH ----------
    async def run_batch(self, event: Optional[ChangeEvent] = None) -> None:
        """Run every rule once, in order; a failing rule does not stop the rest."""
        if self._batch_limit is None:
            await self._run_rules(event)
        else:
            async with self._batch_limit:
                await self._run_rules(event)

    async def _run_rules(self, event: Optional[ChangeEvent]) -> None:
        if event is not None:
            logger.debug(f"batch for {event.name}={event.value!r}")
        for rule in self.rules:
            try:
                await rule.run()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"error in '{rule.name}': {e}")

    def _spawn_batch(self, event: ChangeEvent) -> asyncio.Task:
        task = asyncio.create_task(self.run_batch(event))
        self._batches.add(task)
        task.add_done_callback(self._batches.discard)
        return task

    async def dispatch_forever(self) -> None:
        """Receive change events forever, starting one rule batch per event."""
        while True:
            event = await self.variables.updates.receive()
            self._spawn_batch(event)

    # ---------- LIFECYCLE ----------
    async def start(self) -> None:
        """Start the dispatch loop and the clock."""
        if not self._loaded:
            self.load()
        if self._started:
            return
        self._run_event = asyncio.Event()
        self._dispatcher = asyncio.create_task(self.dispatch_forever(), name="gifttt-dispatch")
        if self.clock:
            await self.clock.start()
        self._started = True
        logger.info("RuleManager: started")

    async def stop(self) -> None:
        """Cancel the clock, the dispatch loop and any in-flight batches."""
        logger.info("RuleManager: stopping")
        self._started = False
        if self.clock:
            await self.clock.stop()

        tasks = list(self._batches)
        if self._dispatcher:
            tasks.append(self._dispatcher)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._dispatcher = None

        if self._run_event:
            self._run_event.set()
        logger.info("RuleManager: stopped")

    def request_stop(self) -> asyncio.Task:
        """Schedule stop() from a callback; repeated calls share one task."""
        if self._stop_task is None or self._stop_task.done():
            self._stop_task = asyncio.get_running_loop().create_task(self.stop(), name="gifttt-stop")
        return self._stop_task

    async def run_forever(self) -> None:
        """Run until stop() is called."""
        if not self._started:
            await self.start()
        logger.info("RuleManager: entering run_forever loop")
        try:
            await self._run_event.wait()
        except asyncio.CancelledError:
            logger.info("RuleManager: run_forever cancelled")
        finally:
            logger.info("RuleManager: exiting run_forever")

    # ---------- BOOTSTRAP ----------
    @classmethod
    def from_config(cls, config: Dict[str, Any], store: Optional[Store] = None) -> "RuleManager":
        """Build the store, variables and rule manager described by ``config``."""
        main = config.get("main", {})
        store_cfg = config.get("store", {})
        clock_cfg = config.get("clock", {})
        dispatch_cfg = config.get("dispatch", {})

        if store is None:
            store = open_store(store_cfg.get("path"))
        variables = VariableManager(store, prefix=store_cfg.get("prefix", DEFAULT_PREFIX))
        return cls(
            variables,
            rules_dir=main.get("rules_dir", "."),
            suffix=main.get("rule_suffix", DEFAULT_RULE_SUFFIX),
            clock_enabled=bool(clock_cfg.get("enabled", True)),
            clock_interval=float(clock_cfg.get("interval", 1.0)),
            max_concurrent_batches=int(dispatch_cfg.get("max_concurrent_batches", 0)),
        )

    @classmethod
    async def bootstrap_and_run(cls, config: Dict[str, Any]) -> int:
        """Build from config, run until SIGINT/SIGTERM, return an exit code."""
        mgr = cls.from_config(config)
        await mgr.start()

        loop = asyncio.get_running_loop()

        def handle_signal():
            logger.info("Signal received, initiating shutdown...")
            mgr.request_stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Windows support or non-main thread
                signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(handle_signal))

        await mgr.run_forever()
        if mgr._stop_task is not None:
            await mgr._stop_task
        return 0
