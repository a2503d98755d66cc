import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from models.transaction import TransactionType


class Transaction(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: TransactionType
    vault_id: uuid.UUID
    user_id: str | None = None
    amount: float
    shares: float
    asset: str | None = None
    timestamp: datetime
