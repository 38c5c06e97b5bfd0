import struct

import pytest
from click.testing import CliRunner
from solders.pubkey import Pubkey

from stablind.cli import cli
from stablind.codec.discriminator import event_discriminator, instruction_discriminator
from stablind.codec.pda import find_proposal_address, find_stablecoin_address
from stablind.storage.audit import AuditStore
from stablind.storage.database import connect
from stablind.storage.webhooks import WebhookRepository


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "cli.duckdb")


def test_discriminator(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["discriminator", "pause"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == instruction_discriminator("pause").hex()

    result = runner.invoke(cli, ["discriminator", "TokensMinted", "--event"])
    assert result.output.strip() == event_discriminator("TokensMinted").hex()


def test_encode(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["encode", "mint_tokens", "amount=1000"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == (instruction_discriminator("mint_tokens") + struct.pack("<Q", 1000)).hex()

    result = runner.invoke(cli, ["encode", "update_minter", "quota=5", "epoch_duration=none"])
    assert result.exit_code == 0, result.output
    assert bytes.fromhex(result.output.strip())[-1:] == b"\x00"


@pytest.mark.parametrize(
    "args",
    [
        ["encode", "print_money"],
        ["encode", "mint_tokens"],
        ["encode", "mint_tokens", "amount"],
        ["encode", "mint_tokens", "memo=x"],
        ["encode", "mint_tokens", "amount=lots"],
    ],
)
def test_encode_errors(runner: CliRunner, args: list[str]) -> None:
    result = runner.invoke(cli, args)
    assert result.exit_code != 0


def test_pda(runner: CliRunner) -> None:
    mint = Pubkey.new_unique()
    address, bump = find_stablecoin_address(mint)
    result = runner.invoke(cli, ["pda", "stablecoin", str(mint)])
    assert result.exit_code == 0, result.output
    assert str(address) in result.output
    assert f"bump {bump}" in result.output

    coin = Pubkey.new_unique()
    address, _ = find_proposal_address(coin, 3)
    result = runner.invoke(cli, ["pda", "proposal", str(coin), "3"])
    assert str(address) in result.output


def test_pda_bad_input(runner: CliRunner) -> None:
    assert runner.invoke(cli, ["pda", "role", str(Pubkey.new_unique())]).exit_code != 0
    assert runner.invoke(cli, ["pda", "stablecoin", "not-an-address"]).exit_code != 0


def test_webhooks_lifecycle(runner: CliRunner, db_path: str) -> None:
    result = runner.invoke(cli, ["webhooks", "--db", db_path, "add", "https://a.example/h", "--event", "TokensMinted"])
    assert result.exit_code == 0, result.output
    assert "Registered webhook" in result.output

    assert runner.invoke(cli, ["webhooks", "--db", db_path, "add", "ftp://nope"]).exit_code != 0

    con = connect(db_path)
    try:
        (reg,) = WebhookRepository(con).list()
    finally:
        con.close()
    assert reg.events == ("TokensMinted",)

    assert runner.invoke(cli, ["webhooks", "--db", db_path, "disable", str(reg.id)]).exit_code == 0
    con = connect(db_path)
    try:
        assert WebhookRepository(con).get(reg.id).active is False
    finally:
        con.close()

    result = runner.invoke(cli, ["webhooks", "--db", db_path, "list"])
    assert result.exit_code == 0
    assert "a.example" in result.output

    assert runner.invoke(cli, ["webhooks", "--db", db_path, "remove", str(reg.id)]).exit_code == 0
    assert runner.invoke(cli, ["webhooks", "--db", db_path, "remove", str(reg.id)]).exit_code != 0


def test_events_and_operations(runner: CliRunner, db_path: str) -> None:
    store = AuditStore(connect(db_path))
    store.record_event("TokensMinted", "coin", {"amount": "1"}, "sig-a", 10, 1)
    store.record_operation("mint", "coin", "minter", "sig-a", amount="1", target="bob")
    store.close()

    result = runner.invoke(cli, ["events", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "TokensMinted" in result.output

    result = runner.invoke(cli, ["operations", "--db", db_path, "--stablecoin", "coin"])
    assert result.exit_code == 0, result.output
    assert "mint" in result.output


def test_env_var_defaults(runner: CliRunner, db_path: str) -> None:
    result = runner.invoke(cli, ["events"], env={"STABLIND_DB_PATH": db_path})
    assert result.exit_code == 0, result.output
