from pydantic import BaseModel

from .portfolio import Position
from .transaction import Transaction
from .vault_performance import VaultPerformance


class DepositResult(BaseModel):
    shares_minted: float
    position: Position
    transaction: Transaction


class WithdrawResult(BaseModel):
    amount_withdrawn: float
    position: Position
    transaction: Transaction


class ClaimResult(BaseModel):
    reward_amount: float
    transaction: Transaction


class HarvestResult(BaseModel):
    transaction: Transaction
    performance: VaultPerformance
