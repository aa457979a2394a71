from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
import logging
import time
from typing import Sequence

from grinder_bot.errors import RemoteReadError
from grinder_bot.models import PoolDecision, ValidatedBatch
from grinder_bot.selector import select_candidates

LOGGER = logging.getLogger("grinder_bot")


class SimulationValidator:
    """
    Dry-runs candidate ops for every pool entry in parallel.

    Each entry gets its own slot; the batch is assembled from the slots in input
    order, so ``pool_ids[i]`` and ``ops[i]`` always come from the same entry.
    """

    def __init__(self, chain, max_workers: int = 8, timeout_seconds: float | None = None) -> None:
        self.chain = chain
        self.max_workers = max(1, int(max_workers))
        self.timeout_seconds = timeout_seconds

    def evaluate_pool(self, pool_id: int) -> PoolDecision:
        positions = self.chain.get_positions(pool_id)
        candidates = tuple(select_candidates(positions))
        for op in candidates:
            if self.chain.can_apply(pool_id, op):
                return PoolDecision(pool_id=pool_id, op=op, candidates=candidates)
        LOGGER.info(
            "pool=%s no_eligible_op candidates=%s",
            pool_id,
            ",".join(op.name for op in candidates),
        )
        return PoolDecision(pool_id=pool_id, candidates=candidates)

    def evaluate(self, pool_ids: Sequence[int]) -> list[PoolDecision]:
        if not pool_ids:
            return []
        workers = min(self.max_workers, len(pool_ids))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="grind-sim")
        try:
            futures: list[Future] = [pool.submit(self.evaluate_pool, pool_id) for pool_id in pool_ids]
            _, not_done = wait(futures, timeout=self.timeout_seconds)
            decisions: list[PoolDecision] = []
            for pool_id, future in zip(pool_ids, futures):
                decisions.append(self._collect(pool_id, future, future in not_done))
            return decisions
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def validate(self, pool_ids: Sequence[int]) -> ValidatedBatch:
        started = time.time()
        decisions = self.evaluate(pool_ids)
        batch = ValidatedBatch.from_decisions(decisions)
        LOGGER.info(
            "simulation pools=%s accepted=%s errors=%s elapsed=%.2fs",
            len(decisions),
            len(batch),
            sum(1 for d in decisions if d.error),
            time.time() - started,
        )
        return batch

    @staticmethod
    def _collect(pool_id: int, future: Future, timed_out: bool) -> PoolDecision:
        if timed_out:
            future.cancel()
            LOGGER.warning("pool=%s simulation_timeout", pool_id)
            return PoolDecision(pool_id=pool_id, error="timeout")
        try:
            return future.result()
        except RemoteReadError as exc:
            LOGGER.warning("pool=%s remote_read_failed error=%s", pool_id, exc)
            return PoolDecision(pool_id=pool_id, error=str(exc))
        except Exception as exc:
            LOGGER.exception("pool=%s evaluation_failed", pool_id)
            return PoolDecision(pool_id=pool_id, error=f"{exc.__class__.__name__}: {exc}")
