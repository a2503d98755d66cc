from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint
from enum import Enum
from uuid import UUID
from datetime import datetime, timezone


class PositionStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class UserPosition(SQLModel, table=True):
    __tablename__ = "user_positions"
    __table_args__ = (UniqueConstraint("user_id", "vault_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    vault_id: UUID = Field(foreign_key="vaults.id", index=True)
    user_id: str = Field(index=True)
    shares: float = 0
    deposited_amount: float = 0
    earned_amount: float = 0
    entry_price: float | None = None
    status: PositionStatus = Field(default=PositionStatus.ACTIVE)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
