from datetime import datetime, timezone
import enum
import uuid

import sqlmodel

from utils.calculate_price import calculate_share_price


# create vault categry enum: Yield, Points
class VaultCategory(str, enum.Enum):
    real_yield = "real_yield"
    points = "points"


class RiskLevel(str, enum.Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class VaultBase(sqlmodel.SQLModel):
    id: uuid.UUID = sqlmodel.Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    slug: str | None = None
    description: str | None = None
    asset: str
    strategy: str | None = None
    category: VaultCategory = sqlmodel.Field(default=VaultCategory.real_yield)
    risk_level: RiskLevel = sqlmodel.Field(default=RiskLevel.medium)
    min_deposit: float = 0
    performance_fee: float = 0
    management_fee: float = 0
    apy: float = 0
    total_assets: float = 0
    total_shares: float = 0
    is_active: bool = True
    created_at: datetime = sqlmodel.Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)
    )
    updated_at: datetime | None = None

    @property
    def share_price(self) -> float:
        return calculate_share_price(self.total_assets, self.total_shares)


# Database model, database table inferred from class name
class Vault(VaultBase, table=True):
    __tablename__ = "vaults"
