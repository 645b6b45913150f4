"""Domain models for moving a native asset out of a single address.

Quantities are plain ``int`` values: lovelace and token amounts on the ledger
are unbounded integers, and every figure here is either read verbatim from
``cardano-cli`` output or derived by addition and subtraction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class AssetId:
    """Policy id / asset name pair identifying one native token."""

    policy_id: str
    asset_name_hex: str

    @property
    def unit(self) -> str:
        return f"{self.policy_id}.{self.asset_name_hex}"

    @property
    def display_name(self) -> str:
        """Return the UTF-8 asset name when printable, else the hex form."""

        try:
            decoded = bytes.fromhex(self.asset_name_hex).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return self.asset_name_hex
        return decoded if decoded.isprintable() else self.asset_name_hex

    def __str__(self) -> str:
        return self.unit


@dataclass
class UTxO:
    tx_hash: str
    tx_ix: int
    address: str | None = None
    lovelace: int = 0
    assets: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @property
    def tx_in(self) -> str:
        return f"{self.tx_hash}#{self.tx_ix}"

    def quantity_of(self, asset: AssetId) -> int:
        return self.assets.get(asset.policy_id, {}).get(asset.asset_name_hex, 0)


@dataclass
class BalanceSummary:
    """Totals for one asset across every UTxO held at an address."""

    asset: AssetId
    utxos: List[UTxO]
    total_lovelace: int
    total_asset_quantity: int

    @property
    def utxo_count(self) -> int:
        return len(self.utxos)

    @property
    def tx_ins(self) -> list[str]:
        return [utxo.tx_in for utxo in self.utxos]

    def to_jsonable(self) -> dict[str, Any]:
        return {
            "asset": self.asset.unit,
            "utxo_count": self.utxo_count,
            "total_lovelace": self.total_lovelace,
            "total_asset_quantity": self.total_asset_quantity,
            "utxos": [
                {
                    "tx_in": utxo.tx_in,
                    "lovelace": utxo.lovelace,
                    "asset_quantity": utxo.quantity_of(self.asset),
                }
                for utxo in self.utxos
            ],
        }


@dataclass
class MoveRequirements:
    min_utxo: int
    fee: int
    required_lovelace: int
    shortfall: int

    def to_jsonable(self) -> dict[str, int]:
        return {
            "min_utxo": self.min_utxo,
            "fee": self.fee,
            "required_lovelace": self.required_lovelace,
            "shortfall": self.shortfall,
        }


@dataclass
class MoveResult:
    """Outcome of a build/sign/submit run."""

    signed_tx_file: str
    send_lovelace: int
    fee: int
    submitted: bool = False
    txid: str | None = None

    def to_jsonable(self) -> dict[str, Any]:
        return {
            "signed_tx_file": self.signed_tx_file,
            "send_lovelace": self.send_lovelace,
            "fee": self.fee,
            "submitted": self.submitted,
            "txid": self.txid,
        }
