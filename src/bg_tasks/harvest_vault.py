"""Scheduled job recording realized yield for a vault.

An external scheduler runs it once per harvest period with the yield and
APY reported by the strategy; the estimation itself happens upstream.
"""
import logging
import uuid

import click

from core.db import engine
from core.exceptions import LedgerError
from log import setup_logging
from services.vault_ledger import VaultLedger
from services.vault_repository import SqlVaultRepository

logger = logging.getLogger("harvest_vault")
logger.setLevel(logging.INFO)


def harvest_vault(
    ledger: VaultLedger,
    vault_id: uuid.UUID,
    apy: float,
    yield_amount: float,
    reward_amount: float = 0.0,
):
    vault = ledger.get_vault(vault_id)
    logger.info(
        "Harvesting %s (%s): tvl %s, share price %s",
        vault.name, vault.id, vault.total_assets, vault.share_price,
    )
    result = ledger.harvest(vault_id, apy, yield_amount, reward_amount)
    logger.info(
        "Harvest recorded: tvl %s, share price %s",
        result.performance.total_locked_value,
        result.performance.price_per_share,
    )
    return result


# Main Execution
@click.command()
@click.option("--vault-id", type=click.UUID, required=True, help="Vault to harvest")
@click.option("--apy", type=float, required=True, help="APY reported by the strategy")
@click.option("--yield-amount", type=float, default=0.0, help="Realized yield added to vault assets")
@click.option("--reward-amount", type=float, default=0.0, help="External rewards credited to depositors")
def main(vault_id: uuid.UUID, apy: float, yield_amount: float, reward_amount: float):
    setup_logging("harvest_vault", logger=logger, log_file=True)

    ledger = VaultLedger(SqlVaultRepository(engine))
    try:
        result = harvest_vault(ledger, vault_id, apy, yield_amount, reward_amount)
    except LedgerError as e:
        logger.error("Harvest of vault %s failed: %s", vault_id, e.error_message)
        raise click.ClickException(e.error_message) from e

    click.echo(result.model_dump_json(indent=2))


if __name__ == "__main__":
    main()
