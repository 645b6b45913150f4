"""Transaction sequencing for the consolidating move.

:class:`TransactionBuilder` strings the ``cardano-cli`` calls together in the
order the ledger needs them: protocol parameters, min-UTxO for the token
output, a zero-fee draft for sizing, the minimum fee, and finally the real
body, its signature and submission. Intermediate files live in ``work_dir``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .cardano_cli import CardanoCLI
from .config import ValidationError
from .fees import (
    TX_OUT_COUNT,
    WITNESS_COUNT,
    compute_requirements,
    compute_send_lovelace,
    format_tx_out,
    parse_fee_output,
    parse_min_utxo_output,
)
from .model import BalanceSummary, MoveRequirements, MoveResult

logger = logging.getLogger(__name__)


class NothingToMoveError(RuntimeError):
    """Raised when the source address holds none of the configured asset."""


class InsufficientFundsError(RuntimeError):
    """Raised when the source address cannot cover min-UTxO plus fee."""

    def __init__(self, shortfall: int) -> None:
        super().__init__(
            f"Insufficient ADA. Fund source address with at least {shortfall} lovelace, then rerun."
        )
        self.shortfall = shortfall


def check_move_preconditions(
    summary: BalanceSummary,
    requirements: MoveRequirements,
    skey_file: str | Path | None,
) -> None:
    """Refuse to build a move that cannot be signed, is empty, or is underfunded."""

    if not skey_file or not Path(skey_file).is_file():
        raise ValidationError("--skey-file is required for move")
    if summary.total_asset_quantity <= 0:
        raise NothingToMoveError(
            f"No {summary.asset.unit} found at source address UTxOs. Nothing to move."
        )
    if requirements.shortfall > 0:
        raise InsufficientFundsError(requirements.shortfall)


class TransactionBuilder:
    """Build, sign and submit the single-output move transaction."""

    PROTOCOL_FILE = "protocol.json"
    DRAFT_FILE = "tx.raw"
    FINAL_FILE = "tx.final"
    SIGNED_FILE = "tx.signed"

    def __init__(self, cli: CardanoCLI, work_dir: str | Path) -> None:
        self.cli = cli
        self.work_dir = Path(work_dir)

    def _path(self, name: str) -> Path:
        return self.work_dir / name

    def calculate_requirements(self, summary: BalanceSummary, dest_addr: str) -> MoveRequirements:
        """Ask the node for min-UTxO and fee of moving *summary* to *dest_addr*."""

        protocol_file = self._path(self.PROTOCOL_FILE)
        self.cli.query_protocol_parameters(protocol_file)

        min_utxo_out = self.cli.calculate_min_required_utxo(
            protocol_file,
            format_tx_out(dest_addr, 0, summary.total_asset_quantity, summary.asset),
        )
        min_utxo = parse_min_utxo_output(min_utxo_out)
        logger.debug("min-UTxO for token output: %d lovelace", min_utxo)

        # Size the draft with the widest lovelace the final output can carry.
        draft_lovelace = max(min_utxo, summary.total_lovelace)
        draft_file = self._path(self.DRAFT_FILE)
        self.cli.build_raw(
            summary.tx_ins,
            format_tx_out(dest_addr, draft_lovelace, summary.total_asset_quantity, summary.asset),
            0,
            draft_file,
        )

        fee_out = self.cli.calculate_min_fee(
            draft_file,
            tx_in_count=summary.utxo_count,
            tx_out_count=TX_OUT_COUNT,
            witness_count=WITNESS_COUNT,
            protocol_params_file=protocol_file,
        )
        fee = parse_fee_output(fee_out)
        logger.debug("Calculated fee for %d inputs: %d lovelace", summary.utxo_count, fee)

        return compute_requirements(summary.total_lovelace, min_utxo, fee)

    def build_and_sign(
        self,
        summary: BalanceSummary,
        dest_addr: str,
        fee: int,
        skey_file: str | Path,
    ) -> MoveResult:
        """Build the final body sweeping every input to *dest_addr* and sign it."""

        send_lovelace = compute_send_lovelace(summary.total_lovelace, fee)
        logger.info(
            "Building move of %d lovelace + %d %s from %d UTxOs",
            send_lovelace,
            summary.total_asset_quantity,
            summary.asset.unit,
            summary.utxo_count,
        )
        final_file = self._path(self.FINAL_FILE)
        self.cli.build_raw(
            summary.tx_ins,
            format_tx_out(dest_addr, send_lovelace, summary.total_asset_quantity, summary.asset),
            fee,
            final_file,
        )
        signed_file = self.cli.sign(final_file, skey_file, self._path(self.SIGNED_FILE))
        return MoveResult(signed_tx_file=str(signed_file), send_lovelace=send_lovelace, fee=fee)

    def submit(self, result: MoveResult) -> MoveResult:
        """Submit a signed move and record its transaction id."""

        # txid is computed offline; resolve it before the network call.
        result.txid = self.cli.txid(result.signed_tx_file)
        self.cli.submit(result.signed_tx_file)
        result.submitted = True
        logger.info("Submitted transaction %s", result.txid)
        return result
