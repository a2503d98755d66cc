from .vault import Vault, VaultCreate
from .portfolio import Position, Holding, Portfolio
from .transaction import Transaction
from .vault_performance import VaultPerformance
from .ledger import DepositResult, WithdrawResult, ClaimResult, HarvestResult
