from __future__ import annotations

from dataclasses import dataclass
import os


DEFAULT_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price?ids=ethereum&vs_currencies=usd"
WEI_PER_ETH = 10**18


@dataclass(frozen=True)
class GrinderConfig:
    mode: str
    rpc_url: str
    private_key: str
    intent_catalog_address: str
    pool_registry_address: str
    batch_executor_address: str
    port: int
    price_url: str
    api_timeout_seconds: float

    page_size: int
    per_pool_cap_usd: float
    # Reserved: not part of the gating formula.
    max_budget_fraction: float
    gas_multiplier_numerator: int
    gas_multiplier_denominator: int
    unit_scale: int
    fallback_price_usd: float

    grind_interval_seconds: float
    intent_count_interval_seconds: float
    price_interval_seconds: float
    cycle_timeout_seconds: float
    max_workers: int

    log_level: str

    @property
    def live_mode(self) -> bool:
        return self.mode.lower() == "live"

    @property
    def paper_mode(self) -> bool:
        return not self.live_mode

    def missing_live_settings(self) -> list[str]:
        missing: list[str] = []
        if not self.private_key:
            missing.append("GRINDER_PRIVATE_KEY")
        if not self.intent_catalog_address:
            missing.append("INTENT_NFT_ADDRESS")
        if not self.pool_registry_address:
            missing.append("POOLS_NFT_ADDRESS")
        if not self.batch_executor_address:
            missing.append("GRINDER_AI_ADDRESS")
        return missing


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_multiplier(raw: str, default: tuple[int, int] = (14, 10)) -> tuple[int, int]:
    """
    Accepts "14/10" or a decimal like "1.4" and returns an integer ratio.
    """
    value = raw.strip()
    if not value:
        return default
    if "/" in value:
        num_raw, den_raw = value.split("/", 1)
        try:
            num, den = int(num_raw), int(den_raw)
        except ValueError:
            return default
    else:
        try:
            num, den = int(round(float(value) * 100)), 100
        except ValueError:
            return default
    if num <= 0 or den <= 0:
        return default
    return num, den


def load_config() -> GrinderConfig:
    numerator, denominator = _parse_multiplier(os.getenv("GRINDER_GAS_MULTIPLIER", ""))
    return GrinderConfig(
        mode=os.getenv("GRINDER_MODE", "paper").strip().lower(),
        rpc_url=os.getenv("RPC_URL", "http://127.0.0.1:8545"),
        private_key=os.getenv("GRINDER_PRIVATE_KEY", ""),
        intent_catalog_address=os.getenv("INTENT_NFT_ADDRESS", "").strip(),
        pool_registry_address=os.getenv("POOLS_NFT_ADDRESS", "").strip(),
        batch_executor_address=os.getenv("GRINDER_AI_ADDRESS", "").strip(),
        port=_env_int("PORT", 0),
        price_url=DEFAULT_PRICE_URL,
        api_timeout_seconds=10.0,
        page_size=max(1, _env_int("GRINDER_INTENTS_PER_CYCLE", 1)),
        per_pool_cap_usd=_env_float("GRINDER_MAX_TX_COST_USD", 0.05),
        max_budget_fraction=_env_float("GRINDER_MAX_TX_COST_PCT", 0.0007),
        gas_multiplier_numerator=numerator,
        gas_multiplier_denominator=denominator,
        unit_scale=WEI_PER_ETH,
        fallback_price_usd=_env_float("GRINDER_FALLBACK_ETH_PRICE", 2700.0),
        grind_interval_seconds=_env_float("GRINDER_CYCLE_SECONDS", 60.0),
        intent_count_interval_seconds=_env_float("GRINDER_INTENT_COUNT_SECONDS", 60.0),
        price_interval_seconds=_env_float("GRINDER_PRICE_SECONDS", 60.0),
        cycle_timeout_seconds=_env_float("GRINDER_CYCLE_TIMEOUT", 45.0),
        max_workers=max(1, _env_int("GRINDER_MAX_WORKERS", 8)),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
