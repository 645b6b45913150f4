"""Subprocess client for the Cardano node command-line tool.

Every ledger rule used by night-mover lives in ``cardano-cli``: the helpers in
this module map one-to-one onto its subcommands, run them against the node
socket named in :class:`~night_mover.config.MoverConfig`, and surface failures
as typed exceptions. No transaction logic is implemented here.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Any, Mapping, Sequence

from .config import MoverConfig

logger = logging.getLogger(__name__)


class DependencyError(RuntimeError):
    """Raised when a required executable is not installed."""


class MalformedOutputError(RuntimeError):
    """Raised when ``cardano-cli`` output cannot be interpreted."""


class CardanoCLIError(RuntimeError):
    """Raised when a ``cardano-cli`` invocation exits non-zero."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        subcommand = " ".join(part for part in self.command[1:4] if not part.startswith("-"))
        detail = self.stderr or "no error output"
        super().__init__(f"cardano-cli {subcommand} failed (exit {returncode}): {detail}")


def format_cli_hint(error: CardanoCLIError | str | None) -> str | None:
    """Return a human-friendly hint for common ``cardano-cli`` failures.

    Only well-known failure modes are recognised; anything else returns
    ``None`` and the raw stderr is left to speak for itself.
    """

    if error is None:
        return None
    message = error.stderr if isinstance(error, CardanoCLIError) else str(error)
    lowered = message.lower()

    if "does not exist" in lowered and ("socket" in lowered or "connect" in lowered):
        return (
            "The node socket is missing. Start cardano-node, wait for it to create its socket, "
            "and point --socket (or CARDANO_NODE_SOCKET_PATH) at it."
        )
    if "handshakeerror" in lowered or "versionmismatch" in lowered:
        return (
            "The node rejected the handshake. Check that --mainnet/--testnet-magic matches the "
            "network the node is running on."
        )
    if "badinputsutxo" in lowered:
        return (
            "One or more inputs are already spent. Re-run the command so the UTxO set is queried again."
        )
    if "valuenotconservedutxo" in lowered:
        return (
            "Inputs and outputs do not balance. The UTxO set probably changed between the query and "
            "the build; re-run the command."
        )
    if "feetoosmallutxo" in lowered:
        return "The fee was below the ledger minimum. Re-run to recalculate the fee from fresh protocol parameters."
    if "outputtoosmallutxo" in lowered or "babbageoutputtoosmallutxo" in lowered:
        return (
            "The destination output carries less ADA than the min-UTxO rule requires. "
            "Fund the source address and rerun."
        )
    if "missingvkeywitnesses" in lowered:
        return "The signing key does not match the source address; pass the matching --skey-file."
    return None


class CardanoCLI:
    """Thin typed wrapper around the ``cardano-cli`` executable.

    Query commands use the era-agnostic ``query`` group, transaction commands
    are issued under the configured era (``latest`` by default). The node socket
    is exported as ``CARDANO_NODE_SOCKET_PATH`` for every invocation.
    """

    def __init__(self, config: MoverConfig, env: Mapping[str, str] | None = None) -> None:
        self.config = config
        self._env = dict(os.environ if env is None else env)
        self._env["CARDANO_NODE_SOCKET_PATH"] = config.socket_path

    def ensure_available(self) -> str:
        """Return the resolved executable path or raise :class:`DependencyError`."""

        resolved = shutil.which(self.config.cardano_cli)
        if resolved is None:
            raise DependencyError(f"Missing dependency: {self.config.cardano_cli}")
        return resolved

    def run(self, args: Sequence[str]) -> str:
        """Run ``cardano-cli`` with *args* and return its stdout."""

        command = [self.config.cardano_cli, *[str(arg) for arg in args]]
        logger.debug("cardano-cli call: %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                env=self._env,
                check=False,
            )
        except FileNotFoundError as exc:
            raise DependencyError(f"Missing dependency: {self.config.cardano_cli}") from exc
        if completed.stderr:
            logger.debug("cardano-cli stderr: %s", completed.stderr.strip())
        if completed.returncode != 0:
            logger.debug(
                "cardano-cli exited with %s: %s", completed.returncode, " ".join(command[1:4])
            )
            raise CardanoCLIError(command, completed.returncode, completed.stderr)
        return completed.stdout

    def _era_args(self, *args: str) -> list[str]:
        return [self.config.era, *args] if self.config.era else list(args)

    # Query wrappers ------------------------------------------------------

    def query_utxo(self, address: str, out_file: str | Path) -> dict[str, Any]:
        self.run(
            ["query", "utxo", "--address", address, *self.config.network_args, "--out-file", str(out_file)]
        )
        return load_json_output(out_file)

    def query_utxo_text(self, address: str) -> str:
        return self.run(["query", "utxo", "--address", address, *self.config.network_args])

    def query_protocol_parameters(self, out_file: str | Path) -> dict[str, Any]:
        self.run(
            ["query", "protocol-parameters", *self.config.network_args, "--out-file", str(out_file)]
        )
        return load_json_output(out_file)

    # Transaction wrappers ------------------------------------------------

    def calculate_min_required_utxo(self, protocol_params_file: str | Path, tx_out: str) -> str:
        return self.run(
            self._era_args(
                "transaction",
                "calculate-min-required-utxo",
                "--protocol-params-file",
                str(protocol_params_file),
                "--tx-out",
                tx_out,
            )
        )

    def build_raw(
        self,
        tx_ins: Sequence[str],
        tx_out: str,
        fee: int,
        out_file: str | Path,
    ) -> Path:
        args = self._era_args("transaction", "build-raw")
        for tx_in in tx_ins:
            args.extend(["--tx-in", tx_in])
        args.extend(["--tx-out", tx_out, "--fee", str(fee), "--out-file", str(out_file)])
        self.run(args)
        return Path(out_file)

    def calculate_min_fee(
        self,
        tx_body_file: str | Path,
        *,
        tx_in_count: int,
        tx_out_count: int,
        witness_count: int,
        protocol_params_file: str | Path,
    ) -> str:
        return self.run(
            self._era_args(
                "transaction",
                "calculate-min-fee",
                "--tx-body-file",
                str(tx_body_file),
                "--tx-in-count",
                str(tx_in_count),
                "--tx-out-count",
                str(tx_out_count),
                "--witness-count",
                str(witness_count),
                *self.config.network_args,
                "--protocol-params-file",
                str(protocol_params_file),
            )
        )

    def sign(self, tx_body_file: str | Path, skey_file: str | Path, out_file: str | Path) -> Path:
        self.run(
            self._era_args(
                "transaction",
                "sign",
                "--tx-body-file",
                str(tx_body_file),
                "--signing-key-file",
                str(skey_file),
                *self.config.network_args,
                "--out-file",
                str(out_file),
            )
        )
        return Path(out_file)

    def submit(self, tx_file: str | Path) -> str:
        return self.run(
            self._era_args("transaction", "submit", "--tx-file", str(tx_file), *self.config.network_args)
        )

    def txid(self, tx_file: str | Path) -> str:
        """Return the transaction id of a signed transaction file."""

        raw = self.run(self._era_args("transaction", "txid", "--tx-file", str(tx_file))).strip()
        # Newer releases print {"txhash": ...} instead of the bare id.
        if raw.startswith("{"):
            try:
                return str(json.loads(raw)["txhash"])
            except (ValueError, KeyError, TypeError) as exc:
                raise MalformedOutputError(f"Could not parse txid output: {raw}") from exc
        if not raw:
            raise MalformedOutputError("cardano-cli returned an empty txid")
        return raw


def load_json_output(path: str | Path) -> Any:
    """Read a JSON document written by ``cardano-cli --out-file``."""

    try:
        return json.loads(Path(path).read_text())
    except FileNotFoundError as exc:
        raise MalformedOutputError(f"cardano-cli did not write {path}") from exc
    except ValueError as exc:
        raise MalformedOutputError(f"cardano-cli wrote malformed JSON to {path}: {exc}") from exc
