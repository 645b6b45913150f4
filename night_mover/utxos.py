"""Parse ``cardano-cli query utxo`` JSON and aggregate balances."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from .cardano_cli import MalformedOutputError
from .model import AssetId, BalanceSummary, UTxO

logger = logging.getLogger(__name__)


class EmptyBalanceError(RuntimeError):
    """Raised when the source address holds no UTxOs."""


def _as_quantity(raw: Any, *, context: str) -> int:
    # bool is an int subclass; reject it along with floats and strings.
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise MalformedOutputError(f"Expected an integer quantity for {context}, got {raw!r}")
    if raw < 0:
        raise MalformedOutputError(f"Negative quantity for {context}: {raw}")
    return raw


def _split_tx_in(key: str) -> tuple[str, int]:
    tx_hash, sep, ix = key.partition("#")
    if not sep or not tx_hash:
        raise MalformedOutputError(f"Malformed UTxO key (expected <txhash>#<ix>): {key}")
    try:
        return tx_hash, int(ix)
    except ValueError as exc:
        raise MalformedOutputError(f"Malformed UTxO index in {key}") from exc


def parse_utxos(payload: Any) -> List[UTxO]:
    """Convert ``query utxo --out-file`` JSON into :class:`UTxO` records.

    Absent ``lovelace`` or token entries count as zero. Records are returned
    ordered by ``(tx_hash, tx_ix)`` so transaction inputs are deterministic.
    """

    if not isinstance(payload, dict):
        raise MalformedOutputError("UTxO query output must be a JSON object keyed by <txhash>#<ix>")

    utxos: List[UTxO] = []
    for key, entry in payload.items():
        tx_hash, tx_ix = _split_tx_in(key)
        if not isinstance(entry, dict):
            raise MalformedOutputError(f"UTxO {key} is not a JSON object")
        value = entry.get("value", {})
        if not isinstance(value, dict):
            raise MalformedOutputError(f"UTxO {key} has a malformed value field")

        lovelace = 0
        assets: dict[str, dict[str, int]] = {}
        for unit, amount in value.items():
            if unit == "lovelace":
                lovelace = _as_quantity(amount, context=f"{key} lovelace")
                continue
            if not isinstance(amount, dict):
                raise MalformedOutputError(f"UTxO {key} has a malformed entry for policy {unit}")
            assets[unit] = {
                name: _as_quantity(quantity, context=f"{key} {unit}.{name}")
                for name, quantity in amount.items()
            }

        utxos.append(
            UTxO(
                tx_hash=tx_hash,
                tx_ix=tx_ix,
                address=entry.get("address"),
                lovelace=lovelace,
                assets=assets,
            )
        )

    utxos.sort(key=lambda utxo: (utxo.tx_hash, utxo.tx_ix))
    logger.debug("Parsed %d UTxOs", len(utxos))
    return utxos


def summarize(utxos: Iterable[UTxO], asset: AssetId) -> BalanceSummary:
    """Sum lovelace and the quantity of *asset* across *utxos*."""

    collected = list(utxos)
    return BalanceSummary(
        asset=asset,
        utxos=collected,
        total_lovelace=sum(utxo.lovelace for utxo in collected),
        total_asset_quantity=sum(utxo.quantity_of(asset) for utxo in collected),
    )


def require_utxos(summary: BalanceSummary) -> BalanceSummary:
    if not summary.utxos:
        raise EmptyBalanceError("No UTxOs found at source address.")
    return summary
