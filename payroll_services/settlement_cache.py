"""
payroll_services.settlement_cache -- Last settlement transfer hash per employee.

Responsibility:
    Remembers the hash of the most recent settlement transfer sent to each
    employee so a client can link to it without rescanning the token log.

Architecture position:
    Services -- persistence-backed cache over ``SettlementTransaction``.

Invariants enforced:
    - Last-write-wins per employee; there is no history here.
    - Lookups are served from the snapshot taken by ``load()``; other
      writers become visible only after ``refresh()``.
    - Keys are lowercase addresses.
    - A cache built by ``from_url`` owns its engine; two caches never share
      one, and closing one leaves the other untouched.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    session_scope,
)
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import address_key
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.settlement import SettlementTransaction

logger = get_logger("services.settlement_cache")


class SettlementCache:
    """Snapshot-loaded map of employee -> last settlement tx hash."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        engine: Engine | None = None,
    ):
        self._session_factory = session_factory
        self._engine = engine
        self._clock = clock or SystemClock()
        self._snapshot: dict[str, str] = {}
        self._loaded = False

    @classmethod
    def from_url(cls, database_url: str, clock: Clock | None = None) -> SettlementCache:
        """Build a private engine for ``database_url`` and create the table."""
        engine = build_engine(database_url)
        create_tables(engine)
        return cls(build_session_factory(engine), clock, engine=engine)

    @property
    def session_factory(self) -> sessionmaker[Session] | None:
        return self._session_factory

    def close(self) -> None:
        """Dispose the engine this cache owns, if any."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> dict[str, str]:
        with session_scope(self._session_factory) as session:
            rows = session.scalars(select(SettlementTransaction)).all()
            self._snapshot = {address_key(r.employee): r.tx_hash for r in rows}
        self._loaded = True
        logger.debug("settlement_cache_loaded", extra={"entries": len(self._snapshot)})
        return self.snapshot()

    def refresh(self) -> dict[str, str]:
        return self.load()

    def get(self, employee: str) -> str | None:
        if not self._loaded:
            self.load()
        return self._snapshot.get(address_key(employee))

    def record(self, employee: str, tx_hash: str) -> None:
        """Store ``tx_hash`` as the employee's latest settlement."""
        key = address_key(employee)
        with session_scope(self._session_factory) as session:
            row = session.scalars(
                select(SettlementTransaction).where(SettlementTransaction.employee == key)
            ).one_or_none()
            if row is None:
                session.add(SettlementTransaction(
                    employee=key,
                    tx_hash=tx_hash,
                    recorded_at=self._clock.now(),
                ))
            else:
                row.tx_hash = tx_hash
                row.recorded_at = self._clock.now()
        self._snapshot[key] = tx_hash
        logger.info("settlement_recorded", extra={"employee": key, "tx_hash": tx_hash})

    def snapshot(self) -> dict[str, str]:
        return dict(self._snapshot)
