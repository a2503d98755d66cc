from enum import Enum
from typing import Optional
import uuid

from sqlmodel import SQLModel, Field
from datetime import datetime


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CLAIM = "claim"
    HARVEST = "harvest"


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    type: TransactionType
    vault_id: uuid.UUID = Field(foreign_key="vaults.id", index=True)
    user_id: Optional[str] = Field(default=None, index=True)
    amount: float
    shares: float = 0
    asset: str | None = None
    timestamp: datetime
