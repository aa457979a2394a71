from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import sys
import threading
from typing import Sequence

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from grinder_bot.config import load_config  # noqa: E402
from grinder_bot.errors import RemoteReadError, SubmissionError  # noqa: E402
from grinder_bot.models import Intent, Operation, PoolPositionState, PositionTrack  # noqa: E402


def test_config(**kwargs):
    cfg = load_config()
    return replace(cfg, **kwargs)


def make_state(long_count: int, long_max: int, hedge_count: int = 0, hedge_max: int = 5) -> PoolPositionState:
    return PoolPositionState(
        long=PositionTrack(count=long_count, max_count=long_max),
        hedge=PositionTrack(count=hedge_count, max_count=hedge_max),
    )


class FakeChain:
    """In-memory stand-in for GrinderChain that records every call."""

    def __init__(
        self,
        positions: dict[int, PoolPositionState | Exception] | None = None,
        eligible: set[tuple[int, Operation]] | None = None,
        intents: dict[int, tuple[int, ...]] | None = None,
        total: int = 1,
        gas_estimate: int = 100,
        gas_price: int = 20_000_000_000,
        batch_ok: bool = True,
        submit_error: str = "",
    ) -> None:
        self.positions = positions or {}
        self.eligible = eligible or set()
        self.intents = intents or {}
        self.total = total
        self.gas_estimate = gas_estimate
        self.gas_price_value = gas_price
        self.batch_ok = batch_ok
        self.submit_error = submit_error
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def _record(self, *call) -> None:
        with self._lock:
            self.calls.append(call)

    def call_names(self) -> list[str]:
        with self._lock:
            return [call[0] for call in self.calls]

    def total_intents(self) -> int:
        self._record("total_intents")
        return self.total

    def get_intents(self, intent_ids: Sequence[int]) -> list[Intent]:
        self._record("get_intents", tuple(intent_ids))
        out: list[Intent] = []
        for intent_id in intent_ids:
            if intent_id not in self.intents:
                raise RemoteReadError(f"unknown intent {intent_id}")
            out.append(Intent(id=intent_id, pool_ids=tuple(self.intents[intent_id])))
        return out

    def get_positions(self, pool_id: int) -> PoolPositionState:
        self._record("get_positions", pool_id)
        value = self.positions.get(pool_id)
        if value is None:
            raise RemoteReadError(f"getPositions({pool_id}) failed")
        if isinstance(value, Exception):
            raise value
        return value

    def can_apply(self, pool_id: int, op: Operation) -> bool:
        self._record("can_apply", pool_id, op)
        return (pool_id, op) in self.eligible

    def can_apply_batch(self, pool_ids: Sequence[int], ops: Sequence[Operation]) -> bool:
        self._record("can_apply_batch", tuple(pool_ids), tuple(ops))
        return self.batch_ok

    def estimate_batch_cost(self, pool_ids: Sequence[int], ops: Sequence[Operation]) -> int:
        self._record("estimate_batch_cost", tuple(pool_ids), tuple(ops))
        return self.gas_estimate

    def gas_price(self) -> int:
        self._record("gas_price")
        return self.gas_price_value

    def apply_batch(self, pool_ids: Sequence[int], ops: Sequence[Operation], gas_limit: int) -> str:
        self._record("apply_batch", tuple(pool_ids), tuple(ops), gas_limit)
        if self.submit_error:
            raise SubmissionError(self.submit_error)
        return "0xabc123"

    def preflight(self) -> None:
        self._record("preflight")


class FixedPriceClient:
    def __init__(self, price: float) -> None:
        self.price = price

    def get_price(self) -> float:
        return self.price
