from __future__ import annotations

import pytest

from night_mover.cardano_cli import MalformedOutputError
from night_mover.fees import (
    compute_requirements,
    compute_send_lovelace,
    format_lovelace,
    format_tx_out,
    parse_fee_output,
    parse_min_utxo_output,
)
from night_mover.model import AssetId

NIGHT = AssetId("0691b2fecca1ac4f53cb6dfb00b7013e561d1f34403b957cbb5af1fa", "4e49474854")


def test_format_tx_out_matches_cardano_cli_syntax() -> None:
    assert format_tx_out("addr1dest", 0, 400, NIGHT) == (
        "addr1dest+0 lovelace+400 "
        "0691b2fecca1ac4f53cb6dfb00b7013e561d1f34403b957cbb5af1fa.4e49474854"
    )


@pytest.mark.parametrize("text", ["Coin 1155080\n", "Lovelace 1155080", "  Coin   1155080  "])
def test_parse_min_utxo_output(text: str) -> None:
    assert parse_min_utxo_output(text) == 1155080


def test_parse_fee_output() -> None:
    assert parse_fee_output("171793 Lovelace\n") == 171793


@pytest.mark.parametrize("text", ["", "Coin", "Coin -5", "Coin 1.5", "error: bad"])
def test_parse_min_utxo_output_rejects_garbage(text: str) -> None:
    with pytest.raises(MalformedOutputError) as excinfo:
        parse_min_utxo_output(text)

    assert "Could not parse min-UTxO output" in str(excinfo.value)


def test_parse_fee_output_rejects_json() -> None:
    with pytest.raises(MalformedOutputError):
        parse_fee_output('{"fee": 171793}')


def test_requirements_without_shortfall() -> None:
    requirements = compute_requirements(3_500_000, 1_155_080, 171_793)

    assert requirements.required_lovelace == 1_326_873
    assert requirements.shortfall == 0


def test_requirements_report_shortfall() -> None:
    requirements = compute_requirements(1_000_000, 1_155_080, 171_793)

    assert requirements.shortfall == 326_873


def test_requirements_exact_balance_has_no_shortfall() -> None:
    assert compute_requirements(1_326_873, 1_155_080, 171_793).shortfall == 0


def test_send_lovelace_subtracts_fee() -> None:
    assert compute_send_lovelace(3_500_000, 171_793) == 3_328_207


def test_format_lovelace_shows_ada() -> None:
    assert format_lovelace(3_328_207) == "3328207 lovelace (3.328207 ADA)"
