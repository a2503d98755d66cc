"""Share accounting for pooled yield vaults.

Deposits mint shares and withdrawals burn them at the share price observed
*before* the operation is applied, so existing holders are never diluted.
Harvested yield grows the vault's net asset value (and therefore the share
price); external reward tokens are credited to positions pro rata and paid
out through :meth:`VaultLedger.claim_rewards`.
"""
import logging
import math
import threading
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

import pendulum

import schemas
from core import constants
from core.exceptions import (
    InactiveVaultError,
    InsufficientSharesError,
    InvalidAmountError,
    NoRewardsError,
    NotFoundError,
    ValidationError,
)
from models import (
    PositionStatus,
    Transaction,
    TransactionType,
    UserPosition,
    Vault,
    VaultPerformance,
)
from services.vault_repository import VaultRepository
from utils.calculate_price import calculate_avg_entry_price, clamp_to_zero
from utils.slug import slugify

logger = logging.getLogger(__name__)

FeePolicy = Callable[[Vault, float], float]


def no_fee(vault: Vault, yield_amount: float) -> float:
    return 0.0


def utc_now():
    return pendulum.now(tz=pendulum.UTC)


class VaultLedger:
    def __init__(
        self,
        repository: VaultRepository,
        clock: Optional[Callable[[], pendulum.DateTime]] = None,
        id_factory: Optional[Callable[[], uuid.UUID]] = None,
        fee_policy: Optional[FeePolicy] = None,
        epsilon: float = constants.BALANCE_EPSILON,
    ):
        self.repository = repository
        self.clock = clock or utc_now
        self.id_factory = id_factory or uuid.uuid4
        self.fee_policy = fee_policy or no_fee
        self.epsilon = epsilon
        self._vault_locks: Dict[uuid.UUID, threading.Lock] = {}
        self._vault_locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, vault_id: uuid.UUID):
        with self._vault_locks_guard:
            lock = self._vault_locks.setdefault(vault_id, threading.Lock())
        with lock:
            yield

    def _load_vault(self, vault_id: uuid.UUID, for_update: bool = False) -> Vault:
        vault = self.repository.get_vault(vault_id, for_update=for_update)
        if vault is None:
            raise NotFoundError(f"Vault {vault_id} not found")
        return vault

    def _record(self, tx_type: TransactionType, vault: Vault, amount: float,
                shares: float = 0.0, user_id: str | None = None) -> Transaction:
        transaction = Transaction(
            id=self.id_factory(),
            type=tx_type,
            vault_id=vault.id,
            user_id=user_id,
            amount=amount,
            shares=shares,
            asset=vault.asset,
            timestamp=self.clock(),
        )
        self.repository.append_transaction(transaction)
        return transaction

    # Admin operations

    def create_vault(self, vault_in: schemas.VaultCreate) -> schemas.Vault:
        if not vault_in.name or not vault_in.name.strip():
            raise ValidationError("Vault name is required")
        if not vault_in.asset or not vault_in.asset.strip():
            raise ValidationError("Vault asset type is required")
        for field in ("performance_fee", "management_fee"):
            value = getattr(vault_in, field)
            if not 0 <= value <= 1:
                raise ValidationError(f"{field} must be within [0, 1], got {value}")
        if not math.isfinite(vault_in.min_deposit) or vault_in.min_deposit < 0:
            raise ValidationError("min_deposit must not be negative")
        if not math.isfinite(vault_in.apy) or vault_in.apy < 0:
            raise ValidationError("apy must not be negative")

        now = self.clock()
        vault = Vault(
            id=self.id_factory(),
            name=vault_in.name.strip(),
            slug=slugify(vault_in.name),
            description=vault_in.description,
            asset=vault_in.asset.strip(),
            strategy=vault_in.strategy,
            category=vault_in.category,
            risk_level=vault_in.risk_level,
            min_deposit=vault_in.min_deposit,
            performance_fee=vault_in.performance_fee,
            management_fee=vault_in.management_fee,
            apy=vault_in.apy,
            total_assets=0.0,
            total_shares=0.0,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        with self.repository.unit_of_work():
            self.repository.save_vault(vault)
        logger.info("Created vault %s (%s) for asset %s", vault.name, vault.id, vault.asset)
        return schemas.Vault.model_validate(vault)

    def set_vault_active(self, vault_id: uuid.UUID, is_active: bool) -> schemas.Vault:
        with self._locked(vault_id), self.repository.unit_of_work():
            vault = self._load_vault(vault_id, for_update=True)
            vault.is_active = is_active
            vault.updated_at = self.clock()
            self.repository.save_vault(vault)
        logger.info("Vault %s is_active set to %s", vault_id, is_active)
        return schemas.Vault.model_validate(vault)

    # State changing operations

    def deposit(self, vault_id: uuid.UUID, user_id: str, amount: float) -> schemas.DepositResult:
        with self._locked(vault_id), self.repository.unit_of_work():
            vault = self._load_vault(vault_id, for_update=True)
            if not vault.is_active:
                logger.warning("Rejected deposit of %s into inactive vault %s", amount, vault_id)
                raise InactiveVaultError(f"Vault {vault_id} is not accepting deposits")
            if not math.isfinite(amount) or amount <= 0:
                raise InvalidAmountError(f"Deposit amount must be a positive number, got {amount}")
            if amount < vault.min_deposit:
                raise InvalidAmountError(
                    f"Deposit amount {amount} is below the vault minimum {vault.min_deposit}"
                )

            share_price = vault.share_price
            shares_minted = amount / share_price
            now = self.clock()

            vault.total_assets += amount
            vault.total_shares += shares_minted
            vault.updated_at = now

            position = self.repository.get_position(vault_id, user_id)
            if position is None:
                position = UserPosition(vault_id=vault_id, user_id=user_id)
            position.entry_price = calculate_avg_entry_price(position, share_price, shares_minted)
            position.shares += shares_minted
            position.deposited_amount += amount
            position.status = PositionStatus.ACTIVE
            position.last_updated = now

            self.repository.save_vault(vault)
            self.repository.save_position(position)
            transaction = self._record(
                TransactionType.DEPOSIT, vault, amount, shares_minted, user_id
            )

        logger.info(
            "User %s deposited %s %s into vault %s: minted %s shares at %s",
            user_id, amount, vault.asset, vault_id, shares_minted, share_price,
        )
        return schemas.DepositResult(
            shares_minted=shares_minted,
            position=schemas.Position.model_validate(position),
            transaction=schemas.Transaction.model_validate(transaction),
        )

    def withdraw(self, vault_id: uuid.UUID, user_id: str, shares: float) -> schemas.WithdrawResult:
        with self._locked(vault_id), self.repository.unit_of_work():
            vault = self._load_vault(vault_id, for_update=True)
            if not math.isfinite(shares) or shares <= 0:
                raise InvalidAmountError(f"Shares to withdraw must be a positive number, got {shares}")

            position = self.repository.get_position(vault_id, user_id)
            held = position.shares if position is not None else 0.0
            if held <= 0 or shares > held + self.epsilon:
                logger.warning(
                    "Rejected withdrawal of %s shares by %s from vault %s holding %s",
                    shares, user_id, vault_id, held,
                )
                raise InsufficientSharesError(
                    f"Cannot withdraw {shares} shares, position holds {held}"
                )
            full_exit = abs(held - shares) <= self.epsilon
            if full_exit:
                shares = held

            share_price = vault.share_price
            if abs(vault.total_shares - shares) <= self.epsilon:
                # last holder out takes whatever is left
                amount_withdrawn = vault.total_assets
            else:
                amount_withdrawn = shares * share_price
            now = self.clock()

            vault.total_assets = max(0.0, clamp_to_zero(vault.total_assets - amount_withdrawn, self.epsilon))
            vault.total_shares = max(0.0, clamp_to_zero(vault.total_shares - shares, self.epsilon))
            if vault.total_shares == 0:
                vault.total_assets = 0.0
            vault.updated_at = now

            if full_exit:
                position.shares = 0.0
                position.deposited_amount = 0.0
                position.status = PositionStatus.CLOSED
            else:
                position.deposited_amount -= position.deposited_amount * (shares / held)
                position.shares -= shares
            position.last_updated = now

            self.repository.save_vault(vault)
            self.repository.save_position(position)
            transaction = self._record(
                TransactionType.WITHDRAW, vault, amount_withdrawn, shares, user_id
            )

        logger.info(
            "User %s withdrew %s shares from vault %s for %s %s at %s",
            user_id, shares, vault_id, amount_withdrawn, vault.asset, share_price,
        )
        return schemas.WithdrawResult(
            amount_withdrawn=amount_withdrawn,
            position=schemas.Position.model_validate(position),
            transaction=schemas.Transaction.model_validate(transaction),
        )

    def claim_rewards(self, vault_id: uuid.UUID, user_id: str) -> schemas.ClaimResult:
        with self._locked(vault_id), self.repository.unit_of_work():
            vault = self._load_vault(vault_id, for_update=True)
            position = self.repository.get_position(vault_id, user_id)
            if position is None or position.earned_amount <= 0:
                raise NoRewardsError(f"No rewards to claim for {user_id} in vault {vault_id}")

            reward_amount = position.earned_amount
            position.earned_amount = 0.0
            position.last_updated = self.clock()
            self.repository.save_position(position)
            transaction = self._record(TransactionType.CLAIM, vault, reward_amount, 0.0, user_id)

        logger.info("User %s claimed %s rewards from vault %s", user_id, reward_amount, vault_id)
        return schemas.ClaimResult(
            reward_amount=reward_amount,
            transaction=schemas.Transaction.model_validate(transaction),
        )

    def harvest(
        self,
        vault_id: uuid.UUID,
        new_apy: float,
        yield_amount: float,
        reward_amount: float = 0.0,
    ) -> schemas.HarvestResult:
        """Realize strategy yield into the vault.

        ``yield_amount`` is added to the vault's assets (net of the fee policy's
        cut), raising the share price for every holder. ``reward_amount`` is an
        externally funded reward split across positions by their share of the
        vault and credited to ``earned_amount``.
        """
        with self._locked(vault_id), self.repository.unit_of_work():
            vault = self._load_vault(vault_id, for_update=True)
            if not math.isfinite(new_apy) or new_apy < 0:
                raise ValidationError(f"APY must not be negative, got {new_apy}")
            if not all(math.isfinite(a) and a >= 0 for a in (yield_amount, reward_amount)):
                raise InvalidAmountError("Harvested amounts must be non-negative numbers")
            if vault.total_shares <= 0 and (yield_amount > 0 or reward_amount > 0):
                raise ValidationError(
                    f"Vault {vault_id} has no outstanding shares to receive the harvest"
                )

            fee = min(max(self.fee_policy(vault, yield_amount), 0.0), yield_amount)
            net_yield = yield_amount - fee
            now = self.clock()

            if reward_amount > 0:
                for position in self.repository.list_positions(vault_id=vault_id):
                    if position.shares <= 0:
                        continue
                    position.earned_amount += reward_amount * (position.shares / vault.total_shares)
                    position.last_updated = now
                    self.repository.save_position(position)

            vault.total_assets += net_yield
            vault.apy = new_apy
            vault.updated_at = now
            self.repository.save_vault(vault)

            transaction = self._record(TransactionType.HARVEST, vault, net_yield)
            performance = VaultPerformance(
                id=self.id_factory(),
                vault_id=vault.id,
                datetime=now,
                total_locked_value=vault.total_assets,
                price_per_share=vault.share_price,
                total_shares=vault.total_shares,
                apy=new_apy,
                earned_fee=fee,
            )
            self.repository.append_performance(performance)

        logger.info(
            "Harvested vault %s: yield %s (fee %s), rewards %s, apy %s, share price %s",
            vault_id, yield_amount, fee, reward_amount, new_apy, performance.price_per_share,
        )
        return schemas.HarvestResult(
            transaction=schemas.Transaction.model_validate(transaction),
            performance=schemas.VaultPerformance.model_validate(performance),
        )

    # Reads

    def get_vault(self, vault_id: uuid.UUID) -> schemas.Vault:
        return schemas.Vault.model_validate(self._load_vault(vault_id))

    def list_vaults(self, include_inactive: bool = False) -> List[schemas.Vault]:
        vaults = [
            v for v in self.repository.list_vaults() if include_inactive or v.is_active
        ]
        vaults.sort(key=lambda v: v.created_at, reverse=True)
        return [schemas.Vault.model_validate(v) for v in vaults]

    def get_positions(self, vault_id: uuid.UUID, user_id: Optional[str] = None) -> List[schemas.Position]:
        self._load_vault(vault_id)
        positions = self.repository.list_positions(vault_id=vault_id, user_id=user_id)
        return [schemas.Position.model_validate(p) for p in positions]

    def get_transactions(
        self, user_id: Optional[str] = None, vault_id: Optional[uuid.UUID] = None
    ) -> List[schemas.Transaction]:
        transactions = self.repository.list_transactions(vault_id=vault_id, user_id=user_id)
        transactions.sort(key=lambda t: t.timestamp, reverse=True)
        return [schemas.Transaction.model_validate(t) for t in transactions]

    def get_performance_history(self, vault_id: uuid.UUID) -> List[schemas.VaultPerformance]:
        self._load_vault(vault_id)
        samples = self.repository.list_performance(vault_id)
        samples.sort(key=lambda s: s.datetime)
        return [schemas.VaultPerformance.model_validate(s) for s in samples]

    def get_portfolio(self, user_id: str) -> schemas.Portfolio:
        holdings: List[schemas.Holding] = []
        total_earned = 0.0
        vault_ids = {p.vault_id for p in self.repository.list_positions(user_id=user_id)}
        for vault_id in vault_ids:
            # vault totals and the position are read under the same lock
            with self._locked(vault_id):
                vault = self.repository.get_vault(vault_id)
                position = self.repository.get_position(vault_id, user_id)
            if vault is None or position is None:
                continue
            total_earned += position.earned_amount
            if position.shares <= 0:
                continue
            share_price = vault.share_price
            holdings.append(
                schemas.Holding(
                    **schemas.Position.model_validate(position).model_dump(),
                    vault_name=vault.name,
                    asset=vault.asset,
                    share_price=share_price,
                    current_value=position.shares * share_price,
                )
            )

        holdings.sort(key=lambda h: h.current_value, reverse=True)
        total_value = sum(h.current_value for h in holdings)
        total_deposited = sum(h.deposited_amount for h in holdings)
        return schemas.Portfolio(
            user_id=user_id,
            holdings=holdings,
            total_value=total_value,
            total_deposited=total_deposited,
            total_earned=total_earned,
            pnl=total_value - total_deposited,
        )
