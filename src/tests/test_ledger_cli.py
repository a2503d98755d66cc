import json
import uuid

import pytest
from click.testing import CliRunner

from ledger_cli import cli
from services.vault_ledger import VaultLedger
from services.vault_repository import InMemoryVaultRepository


@pytest.fixture
def ledger():
    return VaultLedger(InMemoryVaultRepository())


@pytest.fixture
def invoke(ledger):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, list(args), obj={"ledger": ledger})

    return _invoke


def create_vault(invoke, name="Options Wheel Vault"):
    result = invoke("create-vault", "--name", name, "--asset", "USDC", "--performance-fee", "0.1")
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_create_and_list_vaults(invoke):
    vault = create_vault(invoke)
    assert vault["share_price"] == 1.0
    assert vault["performance_fee"] == 0.1

    result = invoke("list-vaults")
    assert result.exit_code == 0
    assert [v["id"] for v in json.loads(result.output)] == [vault["id"]]


def test_deposit_withdraw_and_portfolio(invoke):
    vault = create_vault(invoke)

    result = invoke("deposit", vault["id"], "alice", "100")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["shares_minted"] == 100

    result = invoke("withdraw", vault["id"], "alice", "40")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["amount_withdrawn"] == 40

    result = invoke("portfolio", "alice")
    portfolio = json.loads(result.output)
    assert portfolio["total_value"] == 60
    assert len(portfolio["holdings"]) == 1

    result = invoke("history", "--user-id", "alice")
    assert [t["type"] for t in json.loads(result.output)] == ["withdraw", "deposit"]


def test_ledger_errors_exit_with_error_code(invoke):
    vault = create_vault(invoke)
    invoke("deactivate", vault["id"])

    result = invoke("deposit", vault["id"], "alice", "10")

    assert result.exit_code == 1
    assert '"inactive_vault"' in result.output


def test_unknown_vault(invoke):
    result = invoke("show-vault", str(uuid.uuid4()))
    assert result.exit_code == 1
    assert '"not_found"' in result.output


def test_invalid_fee_is_rejected(invoke):
    result = invoke("create-vault", "--name", "Bad", "--asset", "USDC", "--management-fee", "2")
    assert result.exit_code == 1
    assert '"validation"' in result.output


@pytest.mark.parametrize("command, value", [("deposit", "nan"), ("deposit", "inf"), ("withdraw", "nan")])
def test_non_finite_amounts_are_rejected(invoke, ledger, command, value):
    vault = create_vault(invoke)
    invoke("deposit", vault["id"], "alice", "100")

    result = invoke(command, vault["id"], "alice", value)

    assert result.exit_code == 1
    assert '"invalid_amount"' in result.output
    state = ledger.get_vault(uuid.UUID(vault["id"]))
    assert state.total_assets == 100
    assert state.total_shares == 100
