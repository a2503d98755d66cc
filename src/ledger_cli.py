import json
import logging
import uuid
from typing import Any

import click
from pydantic import BaseModel

import schemas
from core.db import engine, init_db
from core.exceptions import LedgerError
from log import setup_logging
from models.vaults import RiskLevel, VaultCategory
from services.vault_ledger import VaultLedger
from services.vault_repository import SqlVaultRepository

logger = logging.getLogger(__name__)


def _echo(result: Any):
    if isinstance(result, BaseModel):
        click.echo(result.model_dump_json(indent=2))
    elif isinstance(result, list):
        click.echo(json.dumps([r.model_dump(mode="json") for r in result], indent=2))
    else:
        click.echo(json.dumps(result, indent=2))


def _run(ctx: click.Context, operation: str, *args, **kwargs):
    ledger: VaultLedger = ctx.obj["ledger"]
    try:
        result = getattr(ledger, operation)(*args, **kwargs)
    except LedgerError as e:
        logger.warning("%s failed: %s", operation, e.error_message)
        click.echo(json.dumps(e.to_dict()), err=True)
        ctx.exit(1)
    _echo(result)


@click.group()
@click.option("--verbose", is_flag=True, help="Log ledger activity to the console")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    setup_logging("ledger", console=verbose)
    ctx.ensure_object(dict)
    if "ledger" not in ctx.obj:
        ctx.obj["ledger"] = VaultLedger(SqlVaultRepository(engine))


@cli.command("init-db")
def init_db_command():
    init_db(engine)
    click.echo("Database initialized")


@cli.command("create-vault")
@click.option("--name", required=True)
@click.option("--asset", required=True, help="Underlying asset type, e.g. APT")
@click.option("--description", default=None)
@click.option("--strategy", default=None)
@click.option("--category", type=click.Choice([c.value for c in VaultCategory]), default=VaultCategory.real_yield.value)
@click.option("--risk-level", type=click.Choice([r.value for r in RiskLevel]), default=RiskLevel.medium.value)
@click.option("--min-deposit", type=float, default=0.0)
@click.option("--performance-fee", type=float, default=0.2)
@click.option("--management-fee", type=float, default=0.02)
@click.option("--apy", type=float, default=0.0)
@click.pass_context
def create_vault(ctx: click.Context, **kwargs):
    vault_in = schemas.VaultCreate(
        **{
            **kwargs,
            "category": VaultCategory(kwargs["category"]),
            "risk_level": RiskLevel(kwargs["risk_level"]),
        }
    )
    _run(ctx, "create_vault", vault_in)


@cli.command("list-vaults")
@click.option("--all", "include_inactive", is_flag=True, help="Include deactivated vaults")
@click.pass_context
def list_vaults(ctx: click.Context, include_inactive: bool):
    _run(ctx, "list_vaults", include_inactive=include_inactive)


@cli.command("show-vault")
@click.argument("vault_id", type=click.UUID)
@click.pass_context
def show_vault(ctx: click.Context, vault_id: uuid.UUID):
    _run(ctx, "get_vault", vault_id)


@cli.command()
@click.argument("vault_id", type=click.UUID)
@click.pass_context
def deactivate(ctx: click.Context, vault_id: uuid.UUID):
    _run(ctx, "set_vault_active", vault_id, False)


@cli.command()
@click.argument("vault_id", type=click.UUID)
@click.argument("user_id")
@click.argument("amount", type=float)
@click.pass_context
def deposit(ctx: click.Context, vault_id: uuid.UUID, user_id: str, amount: float):
    _run(ctx, "deposit", vault_id, user_id, amount)


@cli.command()
@click.argument("vault_id", type=click.UUID)
@click.argument("user_id")
@click.argument("shares", type=float)
@click.pass_context
def withdraw(ctx: click.Context, vault_id: uuid.UUID, user_id: str, shares: float):
    _run(ctx, "withdraw", vault_id, user_id, shares)


@cli.command()
@click.argument("vault_id", type=click.UUID)
@click.argument("user_id")
@click.pass_context
def claim(ctx: click.Context, vault_id: uuid.UUID, user_id: str):
    _run(ctx, "claim_rewards", vault_id, user_id)


@cli.command()
@click.argument("user_id")
@click.pass_context
def portfolio(ctx: click.Context, user_id: str):
    _run(ctx, "get_portfolio", user_id)


@cli.command()
@click.option("--user-id", default=None)
@click.option("--vault-id", type=click.UUID, default=None)
@click.pass_context
def history(ctx: click.Context, user_id: str, vault_id: uuid.UUID):
    _run(ctx, "get_transactions", user_id=user_id, vault_id=vault_id)


@cli.command()
@click.argument("vault_id", type=click.UUID)
@click.pass_context
def performance(ctx: click.Context, vault_id: uuid.UUID):
    _run(ctx, "get_performance_history", vault_id)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
