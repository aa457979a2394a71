from __future__ import annotations

import argparse
from dataclasses import asdict, replace
import json
import logging
import signal
import threading
import time
from typing import Iterable

from grinder_bot.chain import GrinderChain
from grinder_bot.clients_price import EthPriceClient
from grinder_bot.config import GrinderConfig, load_config
from grinder_bot.cost_gate import CostGate
from grinder_bot.errors import RemoteReadError
from grinder_bot.market_state import SharedMarketState
from grinder_bot.models import CycleReport, Intent
from grinder_bot.rotator import IntentRotator
from grinder_bot.scheduler import PeriodicTask
from grinder_bot.selector import select_candidates
from grinder_bot.submitter import BatchSubmitter
from grinder_bot.validator import SimulationValidator

LOGGER = logging.getLogger("grinder_bot")


class GrinderRuntime:
    def __init__(
        self,
        config: GrinderConfig,
        chain=None,
        price_client: EthPriceClient | None = None,
    ) -> None:
        self.config = config
        self.chain = chain if chain is not None else GrinderChain(config)
        self.price_client = price_client or EthPriceClient(
            config.price_url,
            fallback_price=config.fallback_price_usd,
            timeout_seconds=config.api_timeout_seconds,
        )
        self.state = SharedMarketState(price_estimate=config.fallback_price_usd)
        self.rotator = IntentRotator(self.state, page_size=config.page_size)
        self.validator = SimulationValidator(
            self.chain,
            max_workers=config.max_workers,
            timeout_seconds=config.cycle_timeout_seconds if config.cycle_timeout_seconds > 0 else None,
        )
        self.cost_gate = CostGate(config.per_pool_cap_usd, unit_scale=config.unit_scale)
        self.submitter = BatchSubmitter(
            self.chain,
            numerator=config.gas_multiplier_numerator,
            denominator=config.gas_multiplier_denominator,
            live=config.live_mode,
        )
        self.tasks = [
            PeriodicTask("grind", config.grind_interval_seconds, self.run_cycle),
            PeriodicTask("intent-count", config.intent_count_interval_seconds, self.refresh_intent_count),
            PeriodicTask("eth-price", config.price_interval_seconds, self.refresh_price),
        ]
        self._cycle_lock = threading.Lock()
        self._cycle_counter = 0
        self._keep_running = True

    def preflight(self) -> None:
        if not self.config.live_mode:
            return
        missing = self.config.missing_live_settings()
        if missing:
            raise RuntimeError(f"live mode requires {', '.join(missing)}")
        self.chain.preflight()

    # Refresh tasks: each writes exactly one field of the shared state.

    def refresh_intent_count(self) -> int:
        try:
            count = int(self.chain.total_intents())
        except RemoteReadError as exc:
            LOGGER.warning("intent_count_refresh_failed keeping=%s error=%s", self.state.total_intent_count, exc)
            return self.state.total_intent_count
        self.state.set_total_intent_count(count)
        LOGGER.info("intent_count total=%s", count)
        return count

    def refresh_price(self) -> float:
        price = self.price_client.get_price()
        self.state.set_price_estimate(price)
        LOGGER.debug("eth_price usd=%.2f", price)
        return price

    # Decision cycle.

    def run_cycle(self) -> CycleReport:
        if not self._cycle_lock.acquire(blocking=False):
            LOGGER.warning("cycle skipped: previous cycle still running")
            return CycleReport(cycle=self._cycle_counter, status="skipped")
        try:
            self._cycle_counter += 1
            report = CycleReport(cycle=self._cycle_counter, status="started")
            started = time.time()
            try:
                self._cycle(report)
            except RemoteReadError as exc:
                report.status = "error"
                report.error = str(exc)
                LOGGER.warning("cycle=%s aborted remote_read_failed error=%s", report.cycle, exc)
            except Exception as exc:
                report.status = "error"
                report.error = f"{exc.__class__.__name__}: {exc}"
                LOGGER.exception("cycle=%s failed", report.cycle)
            report.elapsed_seconds = time.time() - started
            LOGGER.info(
                "cycle=%s status=%s intents=%s pools=%s accepted=%s elapsed=%.2fs",
                report.cycle,
                report.status,
                report.intent_ids,
                report.pool_count,
                len(report.batch),
                report.elapsed_seconds,
            )
            return report
        finally:
            self._cycle_lock.release()

    def _cycle(self, report: CycleReport) -> None:
        intent_ids = self.rotator.peek()
        report.intent_ids = intent_ids
        intents = self.chain.get_intents(intent_ids)
        self.rotator.commit()

        pool_ids = flatten_pool_ids(intents)
        report.pool_count = len(pool_ids)
        if not pool_ids:
            report.status = "idle"
            return

        batch = self.validator.validate(pool_ids)
        report.batch = batch
        if batch.is_empty:
            report.status = "idle"
            return
        LOGGER.info("cycle=%s validated pool_ids=%s ops=%s", report.cycle, list(batch.pool_ids), batch.op_codes())

        unit_price = self.chain.gas_price()
        unit_cost = self.chain.estimate_batch_cost(batch.pool_ids, batch.ops)
        report.unit_price = unit_price
        report.unit_cost = unit_cost
        decision = self.cost_gate.evaluate(batch, unit_cost, unit_price, self.state.price_estimate)
        report.cost = decision
        LOGGER.info(
            "cycle=%s tx_cost=$%.6f budget=$%.6f",
            report.cycle,
            decision.fiat_cost,
            decision.budget,
        )
        if not decision.allowed:
            report.status = "over_budget"
            return

        result = self.submitter.submit(batch, unit_cost)
        report.submission = result
        report.status = result.status

    # Scheduling.

    def start(self) -> None:
        for task in self.tasks:
            task.start()

    def stop(self) -> None:
        self._keep_running = False

    def run(self) -> None:
        # Seed the shared state before the first decision cycle reads it.
        self.refresh_intent_count()
        self.refresh_price()
        self.start()
        while self._keep_running:
            time.sleep(0.5)

    def close(self) -> None:
        for task in self.tasks:
            task.stop()

    def inspect_pool(self, pool_id: int) -> dict[str, object]:
        positions = self.chain.get_positions(pool_id)
        return {
            "pool_id": pool_id,
            "long": asdict(positions.long),
            "hedge": asdict(positions.hedge),
            "candidates": [op.name for op in select_candidates(positions)],
        }


def flatten_pool_ids(intents: Iterable[Intent]) -> list[int]:
    # Duplicates are kept: two intents may reference the same pool.
    return [pool_id for intent in intents for pool_id in intent.pool_ids]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for noisy in ("web3", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.ERROR)


def _config_from_args(args: argparse.Namespace) -> GrinderConfig:
    config = load_config()
    if getattr(args, "mode", None):
        config = replace(config, mode=args.mode.lower())
    interval = getattr(args, "interval", None)
    if interval is not None:
        if interval <= 0:
            raise ValueError("--interval must be > 0")
        config = replace(config, grind_interval_seconds=float(interval))
    return config


def _run_command(args: argparse.Namespace) -> int:
    try:
        config = _config_from_args(args)
    except ValueError as exc:
        _setup_logging("INFO")
        LOGGER.error(str(exc))
        return 2
    _setup_logging(config.log_level)

    runtime = GrinderRuntime(config)
    try:
        runtime.preflight()
    except Exception as exc:
        LOGGER.error("Preflight failed: %s", exc)
        return 2
    LOGGER.info(
        "Starting grinder mode=%s intents_per_cycle=%s max_tx_cost=$%.4f/pool interval=%.0fs",
        config.mode,
        config.page_size,
        config.per_pool_cap_usd,
        config.grind_interval_seconds,
    )
    signal_count = {"count": 0}

    def _handle_signal(signum: int, _frame: object) -> None:
        signal_count["count"] += 1
        if signal_count["count"] >= 2:
            LOGGER.error("Received signal %s again, forcing exit now", signum)
            raise SystemExit(130)
        LOGGER.warning(
            "Received signal %s, stopping scheduler (press Ctrl+C again to force-exit)",
            signum,
        )
        runtime.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)
    try:
        runtime.run()
        return 0
    except Exception as exc:
        LOGGER.error("Fatal runtime error: %s", exc)
        return 2
    finally:
        runtime.close()


def _once_command(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    _setup_logging(config.log_level)
    runtime = GrinderRuntime(config)
    try:
        runtime.preflight()
    except Exception as exc:
        LOGGER.error("Preflight failed: %s", exc)
        return 2
    runtime.refresh_intent_count()
    runtime.refresh_price()
    if args.intent_id is not None:
        runtime.state.set_cursor(int(args.intent_id))
    report = runtime.run_cycle()
    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 0 if report.status != "error" else 1


def _inspect_command(args: argparse.Namespace) -> int:
    config = load_config()
    _setup_logging(config.log_level)
    runtime = GrinderRuntime(config)
    out: list[dict[str, object]] = []
    status = 0
    for pool_id in args.pool_ids:
        try:
            out.append(runtime.inspect_pool(pool_id))
        except RemoteReadError as exc:
            LOGGER.error("inspect pool=%s failed: %s", pool_id, exc)
            out.append({"pool_id": pool_id, "error": str(exc)})
            status = 1
    print(json.dumps(out, indent=2))
    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grinder_bot", description="Intent-driven pool grinder")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the periodic grind, intent count and price tasks")
    run.add_argument("--mode", choices=("paper", "live"), default=None)
    run.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between decision cycles (default from GRINDER_CYCLE_SECONDS)",
    )
    run.set_defaults(func=_run_command)

    once = sub.add_parser("once", help="Run a single decision cycle and print the report")
    once.add_argument("--mode", choices=("paper", "live"), default=None)
    once.add_argument("--intent-id", type=int, default=None, help="Start the page at this intent id")
    once.set_defaults(func=_once_command)

    inspect = sub.add_parser("inspect", help="Show positions and candidate ops for pools")
    inspect.add_argument("pool_ids", nargs="+", type=int)
    inspect.set_defaults(func=_inspect_command)
    return parser


def cli(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return int(args.func(args))


def main() -> None:
    raise SystemExit(cli())


if __name__ == "__main__":
    main()
