"""Shared configuration loader for night-mover."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .model import AssetId


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


class ValidationError(RuntimeError):
    """Raised when user-supplied inputs fail validation."""


DEFAULT_CONFIG_PATH = Path.home() / ".night-mover.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None

DEFAULT_NETWORK = "mainnet"
DEFAULT_SOCKET_PATH = "/opt/cardano/cnode/sockets/node.socket"
# NIGHT
DEFAULT_POLICY_ID = "0691b2fecca1ac4f53cb6dfb00b7013e561d1f34403b957cbb5af1fa"
DEFAULT_ASSET_NAME_HEX = "4e49474854"
DEFAULT_CARDANO_CLI = "cardano-cli"
DEFAULT_ERA = "latest"

_POLICY_ID_RE = re.compile(r"^[0-9a-f]{56}$")
_ASSET_NAME_RE = re.compile(r"^(?:[0-9a-f]{2}){1,32}$")
_TESTNET_RE = re.compile(r"^testnet(?:[-_]magic)?(?:[:\s=]+(\d+))?$")


@dataclass
class MoverConfig:
    """Resolved settings for talking to a node through ``cardano-cli``."""

    socket_path: str = DEFAULT_SOCKET_PATH
    testnet_magic: int | None = None
    policy_id: str = DEFAULT_POLICY_ID
    asset_name_hex: str = DEFAULT_ASSET_NAME_HEX
    cardano_cli: str = DEFAULT_CARDANO_CLI
    era: str = DEFAULT_ERA

    @property
    def is_mainnet(self) -> bool:
        return self.testnet_magic is None

    @property
    def network_args(self) -> list[str]:
        if self.is_mainnet:
            return ["--mainnet"]
        return ["--testnet-magic", str(self.testnet_magic)]

    @property
    def network_label(self) -> str:
        return " ".join(self.network_args)

    @property
    def address_prefix(self) -> str:
        return "addr1" if self.is_mainnet else "addr_test1"

    @property
    def asset(self) -> AssetId:
        return AssetId(self.policy_id, self.asset_name_hex)


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Config file unreadable: {path}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'mover' section")
    return loaded


def _coerce_magic(raw: Any, *, source: str) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        magic = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid testnet magic in {source}: {raw}") from exc
    if magic <= 0:
        raise ConfigurationError(f"Invalid testnet magic in {source}: {raw}")
    return magic


def _parse_network(raw: Any, *, source: str) -> tuple[bool, int | None] | None:
    """Return ``(is_testnet, magic)`` for a network string, or ``None`` if unset."""

    if raw is None or raw == "":
        return None
    normalized = str(raw).strip().lower().lstrip("-")
    if normalized == "mainnet":
        return False, None
    match = _TESTNET_RE.match(normalized)
    if not match:
        raise ConfigurationError(
            f"Invalid network in {source}: {raw} (expected 'mainnet' or 'testnet-magic:<n>')"
        )
    return True, _coerce_magic(match.group(1), source=source)


def _hex_setting(mover_section: Mapping[str, Any], key: str, path: Path) -> str | None:
    # Unquoted digit-only hex such as 0100 is loaded by YAML as an integer.
    value = mover_section.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(
            f"mover.{key} in {path} must be a quoted hex string, got {value!r}"
        )
    return value


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _resolve_network(
    override_map: Mapping[str, Any],
    env_map: Mapping[str, str],
    mover_section: Mapping[str, Any],
    path: Path,
) -> int | None:
    layers = (
        (
            _parse_network(override_map.get("network"), source="overrides"),
            _coerce_magic(override_map.get("testnet_magic"), source="overrides"),
        ),
        (
            _parse_network(env_map.get("NIGHT_MOVER_NETWORK"), source="environment"),
            _coerce_magic(env_map.get("NIGHT_MOVER_TESTNET_MAGIC"), source="environment"),
        ),
        (
            _parse_network(mover_section.get("network"), source=f"{path} mover.network"),
            _coerce_magic(mover_section.get("testnet_magic"), source=f"{path} mover.testnet_magic"),
        ),
    )
    for network, magic in layers:
        if network is None and magic is None:
            continue
        if network is not None and not network[0]:
            return None
        resolved = _first_value(magic, network[1] if network else None)
        if resolved is None:
            raise ConfigurationError("A testnet network requires a testnet magic number")
        return resolved
    return None


def validate_asset(policy_id: str, asset_name_hex: str) -> AssetId:
    """Validate and normalize a policy id / asset name pair."""

    policy = (policy_id or "").strip().lower()
    name = (asset_name_hex or "").strip().lower()
    if not policy:
        raise ValidationError("POLICY_ID is empty (set policy_id in the config or pass --policy-id)")
    if not name:
        raise ValidationError(
            "ASSET_NAME_HEX is empty (set asset_name_hex in the config or pass --asset-name-hex)"
        )
    if not _POLICY_ID_RE.match(policy):
        raise ValidationError(f"Policy id must be 56 hex characters: {policy_id}")
    if not _ASSET_NAME_RE.match(name):
        raise ValidationError(
            f"Asset name must be hex-encoded with an even length of at most 64 characters: {asset_name_hex}"
        )
    return AssetId(policy, name)


def load_mover_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> MoverConfig:
    """Load mover configuration from CLI overrides, environment variables and optional YAML."""

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    mover_section = file_config.get("mover", {}) or {}
    if not isinstance(mover_section, dict):
        raise ConfigurationError(f"Expected 'mover' to be a mapping in {path}")

    override_map = {key: value for key, value in (overrides or {}).items() if value is not None}

    env_socket = env_map.get("CARDANO_NODE_SOCKET_PATH") or env_map.get("NIGHT_MOVER_SOCKET_PATH")

    resolved_socket = _first_value(
        override_map.get("socket_path"),
        env_socket,
        mover_section.get("socket_path"),
        DEFAULT_SOCKET_PATH,
    )
    resolved_policy = _first_value(
        override_map.get("policy_id"),
        env_map.get("NIGHT_MOVER_POLICY_ID"),
        _hex_setting(mover_section, "policy_id", path),
        DEFAULT_POLICY_ID,
    )
    resolved_asset_name = _first_value(
        override_map.get("asset_name_hex"),
        env_map.get("NIGHT_MOVER_ASSET_NAME_HEX"),
        _hex_setting(mover_section, "asset_name_hex", path),
        DEFAULT_ASSET_NAME_HEX,
    )
    resolved_cli = _first_value(
        override_map.get("cardano_cli"),
        env_map.get("NIGHT_MOVER_CARDANO_CLI"),
        mover_section.get("cardano_cli"),
        DEFAULT_CARDANO_CLI,
    )
    resolved_era = _first_value(
        override_map.get("era"),
        env_map.get("NIGHT_MOVER_ERA"),
        mover_section.get("era"),
        DEFAULT_ERA,
    )

    return MoverConfig(
        socket_path=str(Path(str(resolved_socket)).expanduser()),
        testnet_magic=_resolve_network(override_map, env_map, mover_section, path),
        policy_id=str(resolved_policy).strip().lower(),
        asset_name_hex=str(resolved_asset_name).strip().lower(),
        cardano_cli=str(resolved_cli),
        era=str(resolved_era),
    )
