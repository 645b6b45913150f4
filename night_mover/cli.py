"""Command-line interface for night-mover.

Moves every lovelace and every unit of one native asset held at a source
address to a destination address in a single transaction. The CLI is a thin
façade over ``cardano-cli``: it inspects the address (``--check``), reports the
balance a move needs (``--required``), or builds, signs and submits the move.
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Any, Iterator, Sequence

from .cardano_cli import (
    CardanoCLI,
    CardanoCLIError,
    DependencyError,
    MalformedOutputError,
    format_cli_hint,
)
from .config import (
    ConfigurationError,
    MoverConfig,
    ValidationError,
    load_mover_config,
    validate_asset,
)
from .fees import format_lovelace
from .model import BalanceSummary, MoveRequirements, MoveResult
from .tx_builder import (
    InsufficientFundsError,
    NothingToMoveError,
    TransactionBuilder,
    check_move_preconditions,
)
from .utxos import EmptyBalanceError, parse_utxos, require_utxos, summarize

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MODE_MOVE = "move"
MODE_CHECK = "check"
MODE_REQUIRED = "required"

EPILOG = """\
examples:
  night-mover --addr-file addr-7.addr --check
  night-mover --addr-file addr-7.addr --dest-addr addr1... --required
  night-mover --addr-file addr-7.addr --skey-file addr-7.skey --dest-addr addr1... --dry-run
  night-mover --addr-file addr-7.addr --skey-file addr-7.skey --dest-addr addr1...
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="night-mover",
        description="Move ADA + a native asset (NIGHT by default) from one address to a destination address.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--check",
        dest="mode",
        action="store_const",
        const=MODE_CHECK,
        help="Show UTxOs + totals only (no build/sign/submit)",
    )
    mode_group.add_argument(
        "--required",
        dest="mode",
        action="store_const",
        const=MODE_REQUIRED,
        help="Show min-ADA, fee, required balance, and shortfall (no sign/submit)",
    )
    parser.set_defaults(mode=MODE_MOVE)

    parser.add_argument(
        "--addr-file",
        help="File holding the source address (e.g. addr-7.addr)",
    )
    parser.add_argument(
        "--skey-file",
        help="Signing key for the source address (required for move)",
    )
    parser.add_argument(
        "--dest-addr",
        help="Destination address (required for --required and move)",
    )
    parser.add_argument("--policy-id", help="Asset policy id in hex (default from config)")
    parser.add_argument(
        "--asset-name-hex",
        help="Asset name in hex (default: 4e49474854, NIGHT)",
    )
    parser.add_argument(
        "--socket",
        dest="socket_path",
        help="Path to node.socket (default from config / CARDANO_NODE_SOCKET_PATH)",
    )

    network_group = parser.add_mutually_exclusive_group()
    network_group.add_argument(
        "--mainnet",
        dest="network",
        action="store_const",
        const="mainnet",
        help="Target mainnet (default)",
    )
    network_group.add_argument(
        "--testnet-magic",
        type=int,
        help="Target a testnet with the given network magic",
    )
    parser.set_defaults(network=None)

    parser.add_argument("--cardano-cli", help="cardano-cli executable (default: cardano-cli on PATH)")
    parser.add_argument("--era", help="Era subcommand for transaction commands (default: latest)")
    parser.add_argument("--config", help="Path to a night-mover YAML config file")
    parser.add_argument(
        "--out-dir",
        help="Keep protocol parameters and tx files here instead of a temporary directory",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build+sign but do not submit",
    )
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Emit a JSON report instead of the human-readable summary",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every cardano-cli invocation",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> MoverConfig:
    return load_mover_config(
        config_path=args.config,
        overrides={
            "socket_path": args.socket_path,
            "network": args.network,
            "testnet_magic": args.testnet_magic,
            "policy_id": args.policy_id,
            "asset_name_hex": args.asset_name_hex,
            "cardano_cli": args.cardano_cli,
            "era": args.era,
        },
    )


def _is_socket(path: str) -> bool:
    try:
        return stat.S_ISSOCK(os.stat(path).st_mode)
    except OSError:
        return False


def _read_address_file(path: str | None) -> str:
    if not path:
        raise ValidationError("addr file not found: pass --addr-file")
    addr_path = Path(path)
    if not addr_path.is_file():
        raise ValidationError(f"addr file not found: {path}")
    try:
        text = addr_path.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"addr file unreadable: {path}: {exc}") from exc
    return text.replace("\r", "").replace("\n", "").strip()


def _validate_address(address: str, prefix: str, label: str) -> str:
    if not address.startswith(prefix):
        raise ValidationError(f"{label} address doesn't look right: {address}")
    return address


@contextlib.contextmanager
def _work_dir(out_dir: str | None) -> Iterator[Path]:
    if out_dir:
        path = Path(out_dir).expanduser()
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ValidationError(f"--out-dir is not a usable directory: {out_dir}: {exc}") from exc
        yield path
        return
    with tempfile.TemporaryDirectory(prefix="night-mover-") as tmp:
        yield Path(tmp)


def _print_header(args: argparse.Namespace, config: MoverConfig, source: str) -> None:
    print(f"Source address : {source}")
    print(f"Dest address   : {args.dest_addr or '<not set>'}")
    print(f"Asset          : {config.asset.unit} ({config.asset.display_name})")
    print(f"Network        : {config.network_label}")
    print(f"Socket         : {config.socket_path}")
    print(f"Mode           : {args.mode}")
    print(f"Dry-run        : {'yes' if args.dry_run else 'no'}")
    print()


def _print_totals(summary: BalanceSummary) -> None:
    print(f"Found UTxOs     : {summary.utxo_count}")
    print(f"Total lovelace  : {summary.total_lovelace}")
    print(f"Total asset qty : {summary.total_asset_quantity}")
    print()


def _print_requirements(requirements: MoveRequirements) -> None:
    print(f"Min ADA for token output : {requirements.min_utxo} lovelace")
    print(f"Calculated fee           : {requirements.fee} lovelace")
    print(f"Minimum required balance : {requirements.required_lovelace} lovelace")
    if requirements.shortfall > 0:
        print(f"Shortfall                : {requirements.shortfall} lovelace")
    print()


def _emit_json(
    args: argparse.Namespace,
    config: MoverConfig,
    source: str,
    summary: BalanceSummary,
    requirements: MoveRequirements | None = None,
    result: MoveResult | None = None,
) -> None:
    report: dict[str, Any] = {
        "source_address": source,
        "dest_address": args.dest_addr,
        "network": config.network_label,
        "socket": config.socket_path,
        "mode": args.mode,
        "dry_run": bool(args.dry_run),
        "balance": summary.to_jsonable(),
    }
    if requirements is not None:
        report["requirements"] = requirements.to_jsonable()
    if result is not None:
        report["result"] = result.to_jsonable()
        if not args.out_dir:
            # The temporary work dir is removed on exit.
            report["result"]["signed_tx_file"] = None
    print(json.dumps(report, indent=2))


def cmd_move(args: argparse.Namespace) -> None:
    config = _config_from_args(args)
    cardano = CardanoCLI(config)
    cardano.ensure_available()

    source = _read_address_file(args.addr_file)
    asset = validate_asset(config.policy_id, config.asset_name_hex)
    if not _is_socket(config.socket_path):
        raise ValidationError(f"socket path not found or not a socket: {config.socket_path}")
    _validate_address(source, config.address_prefix, "Source")

    with _work_dir(args.out_dir) as work_dir:
        payload = cardano.query_utxo(source, work_dir / "utxo.json")
        summary = require_utxos(summarize(parse_utxos(payload), asset))

        if not args.as_json:
            _print_header(args, config, source)
            print("UTxOs (text):")
            print(cardano.query_utxo_text(source).rstrip("\n"))
            print()
            _print_totals(summary)

        if args.mode == MODE_CHECK:
            if args.as_json:
                _emit_json(args, config, source, summary)
            return

        if not args.dest_addr:
            raise ValidationError("--dest-addr is required for --required or move")
        dest = _validate_address(args.dest_addr.strip(), config.address_prefix, "Destination")

        builder = TransactionBuilder(cardano, work_dir)
        requirements = builder.calculate_requirements(summary, dest)
        if not args.as_json:
            _print_requirements(requirements)

        if args.mode == MODE_REQUIRED:
            if args.as_json:
                _emit_json(args, config, source, summary, requirements)
            return

        check_move_preconditions(summary, requirements, args.skey_file)
        result = builder.build_and_sign(summary, dest, requirements.fee, args.skey_file)

        if not args.as_json:
            print(f"Sending                  : {format_lovelace(result.send_lovelace)}")
            print(f"Signed tx created: {result.signed_tx_file}")
            print()

        if args.dry_run:
            if args.as_json:
                _emit_json(args, config, source, summary, requirements, result)
            else:
                print("DRY RUN: Not submitting.")
                if not args.out_dir:
                    print("(pass --out-dir to keep the signed transaction)")
            return

        if not args.as_json:
            print("Submitting...")
        builder.submit(result)
        if args.as_json:
            _emit_json(args, config, source, summary, requirements, result)
        else:
            print("Submitted.")
            print(f"Transaction id: {result.txid}")


def _format_error(exc: Exception) -> str:
    message = str(exc)
    if isinstance(exc, CardanoCLIError):
        hint = format_cli_hint(exc)
        if hint:
            message = f"{message}\nHint: {hint}"
    return message


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger("night_mover").setLevel(logging.DEBUG)
    try:
        cmd_move(args)
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
        parser.exit(130)
    except (
        ConfigurationError,
        ValidationError,
        DependencyError,
        CardanoCLIError,
        MalformedOutputError,
        EmptyBalanceError,
        NothingToMoveError,
        InsufficientFundsError,
    ) as exc:
        parser.exit(1, f"error: {_format_error(exc)}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
