from pathlib import Path

import pytest

from night_mover import config as config_module
from night_mover.config import (
    DEFAULT_ASSET_NAME_HEX,
    DEFAULT_POLICY_ID,
    DEFAULT_SOCKET_PATH,
    ConfigurationError,
    MoverConfig,
    ValidationError,
    load_mover_config,
    set_default_config_path,
    validate_asset,
)


@pytest.fixture(autouse=True)
def isolate_default_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
    monkeypatch.setattr(config_module, "_CONFIG_PATH_OVERRIDE", None)


def test_defaults_when_nothing_configured() -> None:
    config = load_mover_config(env={})

    assert isinstance(config, MoverConfig)
    assert config.socket_path == DEFAULT_SOCKET_PATH
    assert config.policy_id == DEFAULT_POLICY_ID
    assert config.asset_name_hex == DEFAULT_ASSET_NAME_HEX
    assert config.network_args == ["--mainnet"]
    assert config.address_prefix == "addr1"
    assert config.asset.unit == f"{DEFAULT_POLICY_ID}.{DEFAULT_ASSET_NAME_HEX}"
    assert config.asset.display_name == "NIGHT"


def test_environment_wins_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        mover:
          socket_path: /yaml/node.socket
          network: testnet-magic:2
          asset_name_hex: "414243"
          era: conway
        """
    )
    env_map = {
        "CARDANO_NODE_SOCKET_PATH": "/env/node.socket",
        "NIGHT_MOVER_NETWORK": "testnet-magic 1",
    }

    config = load_mover_config(config_path=config_path, env=env_map)

    assert config.socket_path == "/env/node.socket"
    assert config.testnet_magic == 1
    assert config.network_args == ["--testnet-magic", "1"]
    assert config.address_prefix == "addr_test1"
    assert config.asset_name_hex == "414243"
    assert config.era == "conway"


def test_overrides_win_over_environment(tmp_path: Path) -> None:
    env_map = {
        "CARDANO_NODE_SOCKET_PATH": "/env/node.socket",
        "NIGHT_MOVER_TESTNET_MAGIC": "2",
        "NIGHT_MOVER_POLICY_ID": "ab" * 28,
    }

    config = load_mover_config(
        env=env_map,
        overrides={"socket_path": "/cli/node.socket", "network": "mainnet", "policy_id": None},
    )

    assert config.socket_path == "/cli/node.socket"
    assert config.is_mainnet
    assert config.policy_id == "ab" * 28


def test_testnet_requires_magic() -> None:
    with pytest.raises(ConfigurationError):
        load_mover_config(env={"NIGHT_MOVER_NETWORK": "testnet"})


def test_invalid_network_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        load_mover_config(env={"NIGHT_MOVER_NETWORK": "preprod-ish"})


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_mover_config(config_path=tmp_path / "missing.yaml", env={})


def test_set_default_config_path_is_used(tmp_path: Path) -> None:
    config_path = tmp_path / "remembered.yaml"
    config_path.write_text("mover:\n  cardano_cli: /opt/bin/cardano-cli\n")

    set_default_config_path(config_path)
    config = load_mover_config(env={})

    assert config.cardano_cli == "/opt/bin/cardano-cli"


def test_mover_section_must_be_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("mover: [1, 2]\n")

    with pytest.raises(ConfigurationError):
        load_mover_config(config_path=config_path, env={})


def test_validate_asset_normalizes_case() -> None:
    asset = validate_asset("AB" * 28, "4E49474854")

    assert asset.policy_id == "ab" * 28
    assert asset.asset_name_hex == "4e49474854"


@pytest.mark.parametrize(
    "policy_id, asset_name, fragment",
    [
        ("", "4e49474854", "POLICY_ID is empty"),
        ("ab" * 28, "", "ASSET_NAME_HEX is empty"),
        ("ab" * 27, "4e49474854", "56 hex characters"),
        ("ab" * 28, "4e4", "even length"),
        ("ab" * 28, "zz", "even length"),
    ],
)
def test_validate_asset_rejects_bad_identifiers(policy_id, asset_name, fragment) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_asset(policy_id, asset_name)

    assert fragment in str(excinfo.value)


def test_unquoted_numeric_asset_name_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("mover:\n  asset_name_hex: 0100\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_mover_config(config_path=config_path, env={})

    assert "mover.asset_name_hex" in str(excinfo.value)
    assert "quoted hex string" in str(excinfo.value)


def test_unquoted_numeric_policy_id_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("mover:\n  policy_id: " + "1" * 56 + "\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_mover_config(config_path=config_path, env={})

    assert "mover.policy_id" in str(excinfo.value)


def test_quoted_numeric_asset_name_is_kept(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text('mover:\n  asset_name_hex: "0100"\n')

    config = load_mover_config(config_path=config_path, env={})

    assert config.asset_name_hex == "0100"


def test_invalid_yaml_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("mover: [unclosed\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_mover_config(config_path=config_path, env={})

    assert "Invalid YAML" in str(excinfo.value)


def test_top_level_document_must_be_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- mover\n- other\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_mover_config(config_path=config_path, env={})

    assert "YAML object" in str(excinfo.value)


def test_unreadable_config_file_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_bytes(b"\xff\xfemover:\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_mover_config(config_path=config_path, env={})

    assert "Config file unreadable" in str(excinfo.value)


def test_night_mover_environment_settings() -> None:
    config = load_mover_config(
        env={
            "NIGHT_MOVER_SOCKET_PATH": "/env/alt.socket",
            "NIGHT_MOVER_CARDANO_CLI": "/opt/cardano/bin/cardano-cli",
            "NIGHT_MOVER_ERA": "conway",
        }
    )

    assert config.socket_path == "/env/alt.socket"
    assert config.cardano_cli == "/opt/cardano/bin/cardano-cli"
    assert config.era == "conway"


def test_environment_magic_wins_over_yaml_mainnet(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("mover:\n  network: mainnet\n")

    config = load_mover_config(config_path=config_path, env={"NIGHT_MOVER_TESTNET_MAGIC": "2"})

    assert config.testnet_magic == 2
    assert config.network_args == ["--testnet-magic", "2"]
    assert config.address_prefix == "addr_test1"
