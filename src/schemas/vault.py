import uuid
from pydantic import BaseModel, ConfigDict
from datetime import datetime

from models.vaults import RiskLevel, VaultCategory


class VaultCreate(BaseModel):
    name: str
    asset: str
    description: str | None = None
    strategy: str | None = None
    category: VaultCategory = VaultCategory.real_yield
    risk_level: RiskLevel = RiskLevel.medium
    min_deposit: float = 0
    performance_fee: float = 0.2
    management_fee: float = 0.02
    apy: float = 0


class VaultBase(BaseModel):
    id: uuid.UUID
    name: str
    slug: str | None = None
    description: str | None = None
    asset: str
    strategy: str | None = None
    category: VaultCategory
    risk_level: RiskLevel
    min_deposit: float
    performance_fee: float
    management_fee: float
    apy: float
    total_assets: float
    total_shares: float
    share_price: float
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None


# Properties shared by models stored in DB
class VaultInDBBase(VaultBase):
    model_config = ConfigDict(from_attributes=True)


# Properties to return to client
class Vault(VaultInDBBase):
    pass
