from datetime import datetime
import uuid
from pydantic import BaseModel, ConfigDict


class VaultPerformanceBase(BaseModel):
    datetime: datetime
    total_locked_value: float
    price_per_share: float
    total_shares: float
    apy: float
    earned_fee: float = 0


# Properties shared by models stored in DB
class VaultPerformanceInDBBase(VaultPerformanceBase):
    id: uuid.UUID
    vault_id: uuid.UUID

    model_config = ConfigDict(from_attributes=True)


# Properties to return to client
class VaultPerformance(VaultPerformanceInDBBase):
    pass
