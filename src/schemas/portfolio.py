import uuid
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List

from models.user_position import PositionStatus


class Position(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vault_id: uuid.UUID
    user_id: str
    shares: float
    deposited_amount: float
    earned_amount: float
    entry_price: float | None = None
    status: PositionStatus
    last_updated: datetime


class Holding(Position):
    vault_name: str
    asset: str
    share_price: float
    current_value: float


class PortfolioBase(BaseModel):
    total_value: float
    total_deposited: float
    total_earned: float
    pnl: float
    holdings: List[Holding] = []


class Portfolio(PortfolioBase):
    user_id: str
