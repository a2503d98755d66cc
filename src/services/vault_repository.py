"""Storage for vaults, positions and their append-only logs.

The ledger only talks to :class:`VaultRepository`. Every mutation it performs
runs inside :meth:`VaultRepository.unit_of_work`, which either makes all of
its writes visible at once or none of them.
"""
import abc
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, select

from models import Transaction, UserPosition, Vault, VaultPerformance

logger = logging.getLogger(__name__)


class VaultRepository(abc.ABC):
    @abc.abstractmethod
    def unit_of_work(self):
        """Context manager grouping reads and writes into one atomic unit."""

    @abc.abstractmethod
    def get_vault(self, vault_id: uuid.UUID, for_update: bool = False) -> Optional[Vault]:
        """Load one vault; ``for_update`` locks it until the unit of work ends."""

    @abc.abstractmethod
    def list_vaults(self) -> List[Vault]:
        ...

    @abc.abstractmethod
    def save_vault(self, vault: Vault) -> None:
        ...

    @abc.abstractmethod
    def get_position(self, vault_id: uuid.UUID, user_id: str) -> Optional[UserPosition]:
        ...

    @abc.abstractmethod
    def list_positions(
        self, vault_id: Optional[uuid.UUID] = None, user_id: Optional[str] = None
    ) -> List[UserPosition]:
        ...

    @abc.abstractmethod
    def save_position(self, position: UserPosition) -> None:
        ...

    @abc.abstractmethod
    def append_transaction(self, transaction: Transaction) -> None:
        ...

    @abc.abstractmethod
    def list_transactions(
        self, vault_id: Optional[uuid.UUID] = None, user_id: Optional[str] = None
    ) -> List[Transaction]:
        ...

    @abc.abstractmethod
    def append_performance(self, performance: VaultPerformance) -> None:
        ...

    @abc.abstractmethod
    def list_performance(self, vault_id: uuid.UUID) -> List[VaultPerformance]:
        ...


def _clone(record: SQLModel) -> SQLModel:
    return type(record).model_validate(record.model_dump())


class _PendingWrites:
    def __init__(self):
        self.vaults: Dict[uuid.UUID, Vault] = {}
        self.positions: Dict[Tuple[uuid.UUID, str], UserPosition] = {}
        self.transactions: List[Transaction] = []
        self.performance: List[VaultPerformance] = []


class InMemoryVaultRepository(VaultRepository):
    """Dictionary backed repository.

    Records are copied on the way in and on the way out, so callers can never
    mutate committed state. Writes made inside a unit of work are staged per
    thread and published under a single lock when the unit of work exits
    cleanly; an exception discards them.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._local = threading.local()
        self._vaults: Dict[uuid.UUID, Vault] = {}
        self._positions: Dict[Tuple[uuid.UUID, str], UserPosition] = {}
        self._transactions: List[Transaction] = []
        self._performance: List[VaultPerformance] = []

    @property
    def _pending(self) -> Optional[_PendingWrites]:
        return getattr(self._local, "pending", None)

    @contextmanager
    def unit_of_work(self) -> Iterator["InMemoryVaultRepository"]:
        if self._pending is not None:
            # nested units of work join the outer one
            yield self
            return

        pending = _PendingWrites()
        self._local.pending = pending
        try:
            yield self
        except Exception:
            logger.debug("Discarding %d staged transaction(s)", len(pending.transactions))
            raise
        else:
            with self._lock:
                self._vaults.update(pending.vaults)
                self._positions.update(pending.positions)
                self._transactions.extend(pending.transactions)
                self._performance.extend(pending.performance)
        finally:
            self._local.pending = None

    def get_vault(self, vault_id: uuid.UUID, for_update: bool = False) -> Optional[Vault]:
        # for_update is a no-op here; the ledger's per-vault locks serialize writers
        pending = self._pending
        if pending is not None and vault_id in pending.vaults:
            return _clone(pending.vaults[vault_id])
        with self._lock:
            vault = self._vaults.get(vault_id)
        return _clone(vault) if vault is not None else None

    def list_vaults(self) -> List[Vault]:
        with self._lock:
            vaults = dict(self._vaults)
        if self._pending is not None:
            vaults.update(self._pending.vaults)
        return [_clone(v) for v in vaults.values()]

    def save_vault(self, vault: Vault) -> None:
        self._stage_or_commit("vaults", vault.id, vault)

    def get_position(self, vault_id: uuid.UUID, user_id: str) -> Optional[UserPosition]:
        key = (vault_id, user_id)
        pending = self._pending
        if pending is not None and key in pending.positions:
            return _clone(pending.positions[key])
        with self._lock:
            position = self._positions.get(key)
        return _clone(position) if position is not None else None

    def list_positions(
        self, vault_id: Optional[uuid.UUID] = None, user_id: Optional[str] = None
    ) -> List[UserPosition]:
        with self._lock:
            positions = dict(self._positions)
        if self._pending is not None:
            positions.update(self._pending.positions)
        return [
            _clone(p)
            for p in positions.values()
            if (vault_id is None or p.vault_id == vault_id)
            and (user_id is None or p.user_id == user_id)
        ]

    def save_position(self, position: UserPosition) -> None:
        self._stage_or_commit("positions", (position.vault_id, position.user_id), position)

    def append_transaction(self, transaction: Transaction) -> None:
        self._append("transactions", transaction)

    def list_transactions(
        self, vault_id: Optional[uuid.UUID] = None, user_id: Optional[str] = None
    ) -> List[Transaction]:
        with self._lock:
            transactions = list(self._transactions)
        if self._pending is not None:
            transactions.extend(self._pending.transactions)
        return [
            _clone(t)
            for t in transactions
            if (vault_id is None or t.vault_id == vault_id)
            and (user_id is None or t.user_id == user_id)
        ]

    def append_performance(self, performance: VaultPerformance) -> None:
        self._append("performance", performance)

    def list_performance(self, vault_id: uuid.UUID) -> List[VaultPerformance]:
        with self._lock:
            samples = list(self._performance)
        if self._pending is not None:
            samples.extend(self._pending.performance)
        return [_clone(s) for s in samples if s.vault_id == vault_id]

    def _stage_or_commit(self, table: str, key, record: SQLModel) -> None:
        pending = self._pending
        if pending is not None:
            getattr(pending, table)[key] = _clone(record)
            return
        with self._lock:
            getattr(self, f"_{table}")[key] = _clone(record)

    def _append(self, table: str, record: SQLModel) -> None:
        pending = self._pending
        if pending is not None:
            getattr(pending, table).append(_clone(record))
            return
        with self._lock:
            getattr(self, f"_{table}").append(_clone(record))


def vault_statement(vault_id: uuid.UUID, for_update: bool = False):
    """Select one vault, optionally taking a row lock (FOR UPDATE).

    The lock serializes writers running in separate processes against the same
    database. It is refreshed from the row so a session that already holds the
    vault sees the committed values. SQLite has no row locks and ignores it.
    """
    statement = select(Vault).where(Vault.id == vault_id)
    if for_update:
        statement = statement.with_for_update().execution_options(populate_existing=True)
    return statement


class SqlVaultRepository(VaultRepository):
    """SQLModel backed repository; one session per unit of work and thread."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._local = threading.local()

    @contextmanager
    def unit_of_work(self) -> Iterator["SqlVaultRepository"]:
        if getattr(self._local, "session", None) is not None:
            yield self
            return

        with Session(self.engine, expire_on_commit=False) as session:
            self._local.session = session
            try:
                yield self
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                self._local.session = None

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = getattr(self._local, "session", None)
        if session is not None:
            yield session
            return
        with Session(self.engine, expire_on_commit=False) as session:
            yield session
            session.commit()

    def get_vault(self, vault_id: uuid.UUID, for_update: bool = False) -> Optional[Vault]:
        in_unit_of_work = getattr(self._local, "session", None) is not None
        with self._session() as session:
            return session.exec(vault_statement(vault_id, for_update and in_unit_of_work)).first()

    def list_vaults(self) -> List[Vault]:
        with self._session() as session:
            return list(session.exec(select(Vault)).all())

    def save_vault(self, vault: Vault) -> None:
        with self._session() as session:
            session.add(vault)
            session.flush()

    def get_position(self, vault_id: uuid.UUID, user_id: str) -> Optional[UserPosition]:
        with self._session() as session:
            return session.exec(
                select(UserPosition)
                .where(UserPosition.vault_id == vault_id)
                .where(UserPosition.user_id == user_id)
            ).first()

    def list_positions(
        self, vault_id: Optional[uuid.UUID] = None, user_id: Optional[str] = None
    ) -> List[UserPosition]:
        statement = select(UserPosition)
        if vault_id is not None:
            statement = statement.where(UserPosition.vault_id == vault_id)
        if user_id is not None:
            statement = statement.where(UserPosition.user_id == user_id)
        with self._session() as session:
            return list(session.exec(statement).all())

    def save_position(self, position: UserPosition) -> None:
        with self._session() as session:
            session.add(position)
            session.flush()

    def append_transaction(self, transaction: Transaction) -> None:
        with self._session() as session:
            session.add(transaction)
            session.flush()

    def list_transactions(
        self, vault_id: Optional[uuid.UUID] = None, user_id: Optional[str] = None
    ) -> List[Transaction]:
        statement = select(Transaction)
        if vault_id is not None:
            statement = statement.where(Transaction.vault_id == vault_id)
        if user_id is not None:
            statement = statement.where(Transaction.user_id == user_id)
        with self._session() as session:
            return list(session.exec(statement).all())

    def append_performance(self, performance: VaultPerformance) -> None:
        with self._session() as session:
            session.add(performance)
            session.flush()

    def list_performance(self, vault_id: uuid.UUID) -> List[VaultPerformance]:
        with self._session() as session:
            return list(
                session.exec(
                    select(VaultPerformance).where(VaultPerformance.vault_id == vault_id)
                ).all()
            )
