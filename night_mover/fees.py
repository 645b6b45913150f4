"""Min-UTxO and fee helpers for the consolidating transaction."""

from __future__ import annotations

import logging

from .cardano_cli import MalformedOutputError
from .model import AssetId, MoveRequirements

logger = logging.getLogger(__name__)

# One consolidated output, one key witness for the single source address.
TX_OUT_COUNT = 1
WITNESS_COUNT = 1


def format_tx_out(address: str, lovelace: int, quantity: int, asset: AssetId) -> str:
    """Render a ``--tx-out`` value carrying lovelace plus one native asset."""

    return f"{address}+{lovelace} lovelace+{quantity} {asset.unit}"


def _parse_field(text: str, index: int, label: str) -> int:
    fields = (text or "").split()
    raw = fields[index] if len(fields) > index else ""
    if not (raw.isascii() and raw.isdigit()):
        raise MalformedOutputError(f"Could not parse {label} output: {(text or '').strip()}")
    return int(raw)


def parse_min_utxo_output(text: str) -> int:
    """Return lovelace from ``calculate-min-required-utxo`` output (``Coin 1155080``)."""

    return _parse_field(text, 1, "min-UTxO")


def parse_fee_output(text: str) -> int:
    """Return lovelace from ``calculate-min-fee`` output (``171793 Lovelace``)."""

    return _parse_field(text, 0, "fee")


def compute_requirements(total_lovelace: int, min_utxo: int, fee: int) -> MoveRequirements:
    """Return the balance needed to pay *fee* and leave a valid output."""

    required = min_utxo + fee
    shortfall = max(0, required - total_lovelace)
    if shortfall:
        logger.debug(
            "Shortfall of %d lovelace: required=%d, available=%d", shortfall, required, total_lovelace
        )
    return MoveRequirements(
        min_utxo=min_utxo,
        fee=fee,
        required_lovelace=required,
        shortfall=shortfall,
    )


def compute_send_lovelace(total_lovelace: int, fee: int) -> int:
    return total_lovelace - fee


def format_lovelace(amount: int) -> str:
    """Format lovelace with the ADA equivalent for human summaries."""

    ada, remainder = divmod(amount, 1_000_000)
    return f"{amount} lovelace ({ada}.{remainder:06d} ADA)"
