from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy import create_engine, select
from sqlalchemy.orm import (
    Session,
    sessionmaker,
)

from marketdesk.adapters.credentials import PlatformCredentials
from marketdesk.adapters.db.models import (
    ApiCredential,
    Base,
    PayoutRecord,
    SkuCost,
)
from marketdesk.core.models import Platform, parse_day
from marketdesk.core.sku import DEFAULT_SKU_COSTS, SkuCostEntry
from marketdesk.reports.payouts import (
    PayoutCategory,
    PayoutCsvRow,
    PayoutImportError,
)


class SkuCostValidationError(ValueError):
    """A SKU cost write is missing its MPN or cost."""


class DB:
    """Database service layer for SKU costs, payout records and credentials.

    Also satisfies the ``CredentialStore`` protocol through
    ``get_credentials``.
    """

    def __init__(self, url: str) -> None:
        """Initialize database connection.

        Args:
            url: Database URL (e.g., "sqlite:///marketdesk.db")
        """
        self._url = url
        self._engine = create_engine(url, echo=False)
        self._session_factory = sessionmaker(bind=self._engine, class_=Session)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager for database sessions."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self._engine)

    # SKU costs -----------------------------------------------------------

    def list_sku_costs(self) -> list[SkuCostEntry]:
        """Return the cost table ordered by MPN."""
        with self.session() as session:  # type: Session
            rows = session.scalars(select(SkuCost).order_by(SkuCost.mpn)).all()
            return [row.to_entry() for row in rows]

    def upsert_sku_cost(
        self,
        mpn: str | None,
        cost: float | None,
        *,
        size: str | None = None,
        connectivity: str | None = None,
        description: str | None = None,
    ) -> SkuCostEntry:
        """Create or update the cost row for an MPN.

        Args:
            mpn: Manufacturer part number (unique key)
            cost: Unit cost
            size: Optional case/storage size
            connectivity: Optional "GPS" / "Cell"
            description: Optional free-text description

        Returns:
            The stored entry

        Raises:
            SkuCostValidationError: If ``mpn`` or ``cost`` is missing
        """
        key = (mpn or "").strip()
        if not key or cost is None:
            raise SkuCostValidationError("mpn and cost are required")

        with self.session() as session:  # type: Session
            row = session.scalars(select(SkuCost).filter_by(mpn=key)).first()
            if row is None:
                row = SkuCost(mpn=key, cost=float(cost))
                session.add(row)
            else:
                row.cost = float(cost)
                row.updated_at = datetime.now()
            row.size = size
            row.connectivity = connectivity
            row.description = description
            session.flush()
            session.refresh(row)
            return row.to_entry()

    def delete_sku_cost(self, mpn: str) -> bool:
        """Delete the cost row for an MPN. Returns False if it did not exist."""
        with self.session() as session:  # type: Session
            row = session.scalars(select(SkuCost).filter_by(mpn=mpn.strip())).first()
            if row is None:
                return False
            session.delete(row)
            return True

    def seed_sku_costs(
        self, entries: Iterable[SkuCostEntry] = DEFAULT_SKU_COSTS
    ) -> int:
        """Insert entries whose MPN is not stored yet. Returns rows inserted."""
        with self.session() as session:  # type: Session
            existing = set(session.scalars(select(SkuCost.mpn)).all())
            inserted = 0
            for entry in entries:
                if entry.mpn in existing:
                    continue
                session.add(
                    SkuCost(
                        mpn=entry.mpn,
                        cost=float(entry.cost),
                        size=entry.size,
                        connectivity=entry.connectivity,
                        description=entry.description,
                    )
                )
                existing.add(entry.mpn)
                inserted += 1
            return inserted

    # Payout ledger -------------------------------------------------------

    def import_payout_rows(
        self, rows: Iterable[PayoutCsvRow], source_file: str | None = None
    ) -> int:
        """Append ledger rows. Earlier imports are never modified.

        Raises:
            PayoutImportError: If there are no rows to import
        """
        records = [PayoutRecord.from_row(row, source_file) for row in rows]
        if not records:
            raise PayoutImportError("No valid rows found in CSV")
        with self.session() as session:  # type: Session
            session.add_all(records)
        return len(records)

    def load_payout_rows(self) -> list[PayoutCsvRow]:
        """Return every stored ledger row in import order."""
        with self.session() as session:  # type: Session
            records = session.scalars(select(PayoutRecord).order_by(PayoutRecord.id))
            return [record.to_row() for record in records]

    def latest_payout_date(self) -> date | None:
        """Cutover date: the latest stored payout row's day."""
        days = [
            parse_day(row.date)
            for row in self.load_payout_rows()
            if row.category is PayoutCategory.PAYOUT
        ]
        known = [day for day in days if day is not None]
        return max(known) if known else None

    # Credentials ---------------------------------------------------------

    def get_credentials(self, platform: Platform) -> PlatformCredentials | None:
        with self.session() as session:  # type: Session
            row = session.scalars(
                select(ApiCredential).filter_by(platform=platform)
            ).first()
            return row.to_credentials() if row else None

    def save_credentials(self, credentials: PlatformCredentials) -> None:
        """Store credentials, replacing any existing row for the platform."""
        with self.session() as session:  # type: Session
            row = session.scalars(
                select(ApiCredential).filter_by(platform=credentials.platform)
            ).first()
            if row is None:
                row = ApiCredential(
                    platform=credentials.platform,
                    access_token=credentials.access_token,
                )
                session.add(row)
            else:
                row.access_token = credentials.access_token
                row.updated_at = datetime.now()
            row.refresh_token = credentials.refresh_token
            row.token_expires_at = credentials.token_expires_at
            row.user_id = credentials.user_id

    def delete_credentials(self, platform: Platform) -> bool:
        with self.session() as session:  # type: Session
            row = session.scalars(
                select(ApiCredential).filter_by(platform=platform)
            ).first()
            if row is None:
                return False
            session.delete(row)
            return True
