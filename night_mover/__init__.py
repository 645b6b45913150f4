"""Move ADA and one native asset between Cardano addresses via cardano-cli."""

from .cardano_cli import CardanoCLI, CardanoCLIError, DependencyError, MalformedOutputError
from .config import ConfigurationError, MoverConfig, ValidationError, load_mover_config
from .model import AssetId, BalanceSummary, MoveRequirements, MoveResult, UTxO
from .tx_builder import InsufficientFundsError, NothingToMoveError, TransactionBuilder
from .utxos import EmptyBalanceError, parse_utxos, summarize

__all__ = [
    "AssetId",
    "BalanceSummary",
    "CardanoCLI",
    "CardanoCLIError",
    "ConfigurationError",
    "DependencyError",
    "EmptyBalanceError",
    "InsufficientFundsError",
    "MalformedOutputError",
    "MoveRequirements",
    "MoveResult",
    "MoverConfig",
    "NothingToMoveError",
    "TransactionBuilder",
    "UTxO",
    "ValidationError",
    "load_mover_config",
    "parse_utxos",
    "summarize",
]
