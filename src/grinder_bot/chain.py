from __future__ import annotations

import logging
import threading
from typing import Any, Sequence

from grinder_bot.config import GrinderConfig
from grinder_bot.errors import RemoteReadError, SubmissionError
from grinder_bot.models import Intent, Operation, PoolPositionState, parse_intent, parse_pool_positions

LOGGER = logging.getLogger("grinder_bot")


def _position_components() -> list[dict[str, str]]:
    names = ("number", "numberMax", "priceMin", "liquidity", "qty", "price", "feeQty", "feePrice")
    return [{"internalType": "uint256", "name": name, "type": "uint256"} for name in names]


INTENT_CATALOG_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "totalIntents",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256[]", "name": "intentIds", "type": "uint256[]"}],
        "name": "getIntents",
        "outputs": [
            {
                "components": [
                    {"internalType": "address", "name": "owner", "type": "address"},
                    {"internalType": "uint256", "name": "expire", "type": "uint256"},
                    {"internalType": "uint256[]", "name": "poolIds", "type": "uint256[]"},
                ],
                "internalType": "struct IIntentNFT.Intent[]",
                "name": "intents",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

POOL_REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"internalType": "uint256", "name": "poolId", "type": "uint256"}],
        "name": "getPositions",
        "outputs": [
            {
                "components": _position_components(),
                "internalType": "struct IStrategy.Position",
                "name": "long",
                "type": "tuple",
            },
            {
                "components": _position_components(),
                "internalType": "struct IStrategy.Position",
                "name": "hedge",
                "type": "tuple",
            },
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "poolId", "type": "uint256"},
            {"internalType": "uint8", "name": "op", "type": "uint8"},
        ],
        "name": "grindOp",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

BATCH_EXECUTOR_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "uint256[]", "name": "poolIds", "type": "uint256[]"},
            {"internalType": "uint8[]", "name": "ops", "type": "uint8[]"},
        ],
        "name": "batchGrindOp",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]


class GrinderChain:
    """
    web3 bindings for the intent catalog, the pool registry and the batch executor.

    Every read raises ``RemoteReadError`` on failure; the write raises
    ``SubmissionError``. Simulation reverts are reported as ``False``.
    """

    def __init__(self, config: GrinderConfig) -> None:
        self.config = config
        self._w3 = None
        self._contracts: dict[str, Any] = {}
        self._signer_address: str | None = None
        self._lock = threading.Lock()
        # Nonce allocation must not interleave if two submissions ever race.
        self._send_lock = threading.Lock()

    def _web3(self):
        with self._lock:
            if self._w3 is not None:
                return self._w3
            try:
                from web3 import Web3
            except Exception as exc:
                raise RuntimeError("web3 is required. Install with `pip install web3`.") from exc

            provider = Web3.HTTPProvider(
                self.config.rpc_url,
                request_kwargs={"timeout": max(5.0, self.config.api_timeout_seconds)},
            )
            self._w3 = Web3(provider)
            return self._w3

    def _contract(self, name: str):
        cached = self._contracts.get(name)
        if cached is not None:
            return cached
        address, abi = {
            "intents": (self.config.intent_catalog_address, INTENT_CATALOG_ABI),
            "pools": (self.config.pool_registry_address, POOL_REGISTRY_ABI),
            "executor": (self.config.batch_executor_address, BATCH_EXECUTOR_ABI),
        }[name]
        if not address:
            raise RemoteReadError(f"missing contract address for {name}")
        from web3 import Web3

        contract = self._web3().eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        self._contracts[name] = contract
        return contract

    def signer_address(self) -> str | None:
        if self._signer_address is not None:
            return self._signer_address
        if not self.config.private_key:
            return None
        try:
            from eth_account import Account
        except Exception as exc:
            raise RuntimeError("eth-account is required. Install with `pip install eth-account`.") from exc
        self._signer_address = Account.from_key(self.config.private_key).address
        return self._signer_address

    def _call_params(self) -> dict[str, Any]:
        signer = self.signer_address()
        return {"from": signer} if signer else {}

    def preflight(self) -> None:
        w3 = self._web3()
        chain_id = int(w3.eth.chain_id)
        LOGGER.info(
            "chain_preflight chain_id=%s signer=%s executor=%s",
            chain_id,
            self.signer_address(),
            self.config.batch_executor_address,
        )

    def total_intents(self) -> int:
        try:
            return int(self._contract("intents").functions.totalIntents().call())
        except RemoteReadError:
            raise
        except Exception as exc:
            raise RemoteReadError(f"totalIntents failed: {exc}") from exc

    def get_intents(self, intent_ids: Sequence[int]) -> list[Intent]:
        ids = [int(x) for x in intent_ids]
        try:
            raw = self._contract("intents").functions.getIntents(ids).call()
        except RemoteReadError:
            raise
        except Exception as exc:
            raise RemoteReadError(f"getIntents({ids}) failed: {exc}") from exc
        if len(raw) != len(ids):
            raise RemoteReadError(f"getIntents returned {len(raw)} intents for {len(ids)} ids")
        try:
            return [parse_intent(intent_id, item) for intent_id, item in zip(ids, raw)]
        except ValueError as exc:
            raise RemoteReadError(str(exc)) from exc

    def get_positions(self, pool_id: int) -> PoolPositionState:
        try:
            raw = self._contract("pools").functions.getPositions(int(pool_id)).call()
            return parse_pool_positions(raw)
        except RemoteReadError:
            raise
        except Exception as exc:
            raise RemoteReadError(f"getPositions({pool_id}) failed: {exc}") from exc

    def can_apply(self, pool_id: int, op: Operation) -> bool:
        from web3.exceptions import ContractLogicError

        fn = self._contract("pools").functions.grindOp(int(pool_id), int(op))
        try:
            return bool(fn.call(self._call_params()))
        except ContractLogicError as exc:
            LOGGER.debug("grind_op_reverted pool=%s op=%s reason=%s", pool_id, op.name, exc)
            return False
        except Exception as exc:
            raise RemoteReadError(f"grindOp({pool_id}, {op.name}) simulation failed: {exc}") from exc

    def can_apply_batch(self, pool_ids: Sequence[int], ops: Sequence[Operation]) -> bool:
        from web3.exceptions import ContractLogicError

        fn = self._batch_fn(pool_ids, ops)
        try:
            return bool(fn.call(self._call_params()))
        except ContractLogicError as exc:
            LOGGER.info("batch_grind_op_reverted reason=%s", exc)
            return False
        except Exception as exc:
            raise RemoteReadError(f"batchGrindOp simulation failed: {exc}") from exc

    def estimate_batch_cost(self, pool_ids: Sequence[int], ops: Sequence[Operation]) -> int:
        try:
            return int(self._batch_fn(pool_ids, ops).estimate_gas(self._call_params()))
        except RemoteReadError:
            raise
        except Exception as exc:
            raise RemoteReadError(f"batchGrindOp gas estimate failed: {exc}") from exc

    def gas_price(self) -> int:
        try:
            return max(1, int(self._web3().eth.gas_price))
        except Exception as exc:
            raise RemoteReadError(f"gas price lookup failed: {exc}") from exc

    def apply_batch(self, pool_ids: Sequence[int], ops: Sequence[Operation], gas_limit: int) -> str:
        if not self.config.private_key:
            raise SubmissionError("GRINDER_PRIVATE_KEY missing")
        from eth_account import Account

        with self._send_lock:
            try:
                signer = self.signer_address()
                w3 = self._web3()
                fn = self._batch_fn(pool_ids, ops)
                tx = fn.build_transaction(
                    {
                        "from": signer,
                        "nonce": int(w3.eth.get_transaction_count(signer, "pending")),
                        "chainId": int(w3.eth.chain_id),
                        "gas": int(gas_limit),
                        "gasPrice": self.gas_price(),
                    }
                )
                signed = Account.sign_transaction(tx, self.config.private_key)
                raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
                if raw_tx is None:
                    raise SubmissionError("unable to access signed raw transaction")
                tx_hash = w3.eth.send_raw_transaction(raw_tx)
            except SubmissionError:
                raise
            except Exception as exc:
                raise SubmissionError(f"batchGrindOp submission failed: {exc}") from exc
        return _as_hex(tx_hash)

    def _batch_fn(self, pool_ids: Sequence[int], ops: Sequence[Operation]):
        return self._contract("executor").functions.batchGrindOp(
            [int(x) for x in pool_ids],
            [int(op) for op in ops],
        )


def _as_hex(value: Any) -> str:
    if hasattr(value, "to_0x_hex"):
        return value.to_0x_hex()
    if hasattr(value, "hex"):
        text = value.hex()
        return text if text.startswith("0x") else "0x" + text
    return str(value)
