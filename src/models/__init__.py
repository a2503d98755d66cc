from .vaults import Vault, VaultBase, VaultCategory, RiskLevel
from .vault_performance import VaultPerformance, VaultPerformanceBase
from .user_position import UserPosition, PositionStatus
from .transaction import Transaction, TransactionType
