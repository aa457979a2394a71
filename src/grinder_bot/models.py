from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Sequence


class Operation(IntEnum):
    """On-chain grind op codes (uint8)."""

    LONG_BUY = 0
    LONG_SELL = 1
    HEDGE_SELL = 2
    HEDGE_REBUY = 3


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_int(raw: Any, default: int = 0) -> int:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip() == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class PositionTrack:
    count: int
    max_count: int
    min_price: int = 0
    liquidity: int = 0
    quantity: int = 0
    price: int = 0
    fee_quantity: int = 0
    fee_price: int = 0

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def has_capacity(self) -> bool:
        return self.count < self.max_count


@dataclass(frozen=True)
class PoolPositionState:
    long: PositionTrack
    hedge: PositionTrack


@dataclass(frozen=True)
class Intent:
    id: int
    pool_ids: tuple[int, ...]


def parse_position_track(raw: Sequence[Any]) -> PositionTrack:
    """
    Positional layout as returned by getPositions:
      count, maxCount, minPrice, liquidity, quantity, price, feeQuantity, feePrice
    """
    values = list(raw)
    if len(values) < 2:
        raise ValueError(f"position tuple too short: {values!r}")
    values += [0] * (8 - len(values))
    return PositionTrack(
        count=parse_int(values[0]),
        max_count=parse_int(values[1]),
        min_price=parse_int(values[2]),
        liquidity=parse_int(values[3]),
        quantity=parse_int(values[4]),
        price=parse_int(values[5]),
        fee_quantity=parse_int(values[6]),
        fee_price=parse_int(values[7]),
    )


def parse_pool_positions(raw: Sequence[Any]) -> PoolPositionState:
    tracks = list(raw)
    if len(tracks) != 2:
        raise ValueError(f"expected (long, hedge) positions, got {len(tracks)} entries")
    return PoolPositionState(
        long=parse_position_track(tracks[0]),
        hedge=parse_position_track(tracks[1]),
    )


def parse_intent(intent_id: int, raw: Any) -> Intent:
    if isinstance(raw, dict):
        pool_ids_raw = raw.get("poolIds", raw.get("pool_ids", []))
    elif isinstance(raw, (list, tuple)) and raw:
        # (owner, expire, poolIds): pool ids are the trailing array.
        pool_ids_raw = raw[-1]
    else:
        pool_ids_raw = getattr(raw, "poolIds", [])
    if not isinstance(pool_ids_raw, (list, tuple)):
        raise ValueError(f"intent {intent_id} has no pool id list")
    return Intent(id=int(intent_id), pool_ids=tuple(parse_int(x) for x in pool_ids_raw))


@dataclass(frozen=True)
class PoolDecision:
    pool_id: int
    op: Operation | None = None
    candidates: tuple[Operation, ...] = ()
    error: str = ""

    @property
    def accepted(self) -> bool:
        return self.op is not None


@dataclass(frozen=True)
class ValidatedBatch:
    pool_ids: tuple[int, ...] = ()
    ops: tuple[Operation, ...] = ()

    def __post_init__(self) -> None:
        if len(self.pool_ids) != len(self.ops):
            raise ValueError(
                f"batch misaligned: pool_ids={len(self.pool_ids)} ops={len(self.ops)}"
            )

    @classmethod
    def from_decisions(cls, decisions: Sequence[PoolDecision]) -> "ValidatedBatch":
        accepted = [d for d in decisions if d.op is not None]
        return cls(
            pool_ids=tuple(d.pool_id for d in accepted),
            ops=tuple(d.op for d in accepted if d.op is not None),
        )

    def __len__(self) -> int:
        return len(self.pool_ids)

    @property
    def is_empty(self) -> bool:
        return not self.pool_ids

    def op_codes(self) -> list[int]:
        return [int(op) for op in self.ops]

    def to_dict(self) -> dict[str, Any]:
        return {"pool_ids": list(self.pool_ids), "ops": [op.name for op in self.ops]}


@dataclass(frozen=True)
class CostDecision:
    allowed: bool
    fiat_cost: float
    budget: float
    reason: str = ""


@dataclass(frozen=True)
class SubmissionResult:
    status: str
    tx_hash: str = ""
    gas_limit: int = 0
    reason: str = ""


@dataclass
class CycleReport:
    cycle: int
    status: str
    intent_ids: list[int] = field(default_factory=list)
    pool_count: int = 0
    batch: ValidatedBatch = field(default_factory=ValidatedBatch)
    unit_cost: int = 0
    unit_price: int = 0
    cost: CostDecision | None = None
    submission: SubmissionResult | None = None
    error: str = ""
    started_at: datetime = field(default_factory=utc_now)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle": self.cycle,
            "status": self.status,
            "intent_ids": list(self.intent_ids),
            "pool_count": self.pool_count,
            "batch": self.batch.to_dict(),
            "unit_cost": self.unit_cost,
            "unit_price": self.unit_price,
            "cost": asdict(self.cost) if self.cost is not None else None,
            "submission": asdict(self.submission) if self.submission is not None else None,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
