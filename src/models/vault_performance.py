from datetime import datetime
import uuid

import sqlmodel


class VaultPerformanceBase(sqlmodel.SQLModel):
    datetime: datetime
    total_locked_value: float
    price_per_share: float
    total_shares: float
    apy: float
    earned_fee: float = 0


class VaultPerformance(VaultPerformanceBase, table=True):
    __tablename__ = "vault_performance"

    id: uuid.UUID = sqlmodel.Field(default_factory=uuid.uuid4, primary_key=True)
    vault_id: uuid.UUID = sqlmodel.Field(foreign_key="vaults.id", index=True)
