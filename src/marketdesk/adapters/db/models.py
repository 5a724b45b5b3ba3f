from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    TIMESTAMP,
    Float,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)

from marketdesk.adapters.credentials import PlatformCredentials
from marketdesk.core.sku import SkuCostEntry
from marketdesk.reports.payouts import PayoutCsvRow


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class SkuCost(Base):
    """Unit cost per manufacturer part number."""

    __tablename__ = "sku_costs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mpn: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    cost: Mapped[float] = mapped_column(Float, nullable=False)
    size: Mapped[str | None] = mapped_column(String, nullable=True)
    connectivity: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    def to_entry(self) -> SkuCostEntry:
        return SkuCostEntry(
            mpn=self.mpn,
            cost=self.cost,
            size=self.size,
            connectivity=self.connectivity,
            description=self.description,
            id=self.id,
        )


class PayoutRecord(Base):
    """One imported payout-ledger line. Append-only."""

    __tablename__ = "payout_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    item_id: Mapped[str | None] = mapped_column(String, nullable=True)
    pack_id: Mapped[str | None] = mapped_column(String, nullable=True)
    gross_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    mp_fee_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    shipping_fee_amount: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )
    net_credit_amount: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )
    net_debit_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    source_file: Mapped[str | None] = mapped_column(String, nullable=True)
    imported_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    @classmethod
    def from_row(cls, row: PayoutCsvRow, source_file: str | None) -> PayoutRecord:
        return cls(
            date=row.date,
            description=row.description,
            item_id=row.item_id or None,
            pack_id=row.pack_id or None,
            gross_amount=row.gross_amount,
            mp_fee_amount=row.mp_fee_amount,
            shipping_fee_amount=row.shipping_fee_amount,
            net_credit_amount=row.net_credit_amount,
            net_debit_amount=row.net_debit_amount,
            source_file=source_file,
        )

    def to_row(self) -> PayoutCsvRow:
        return PayoutCsvRow(
            date=self.date,
            description=self.description,
            item_id=self.item_id or "",
            pack_id=self.pack_id or "",
            gross_amount=self.gross_amount,
            mp_fee_amount=self.mp_fee_amount,
            shipping_fee_amount=self.shipping_fee_amount,
            net_credit_amount=self.net_credit_amount,
            net_debit_amount=self.net_debit_amount,
        )


class ApiCredential(Base):
    """Stored marketplace access token, one row per platform."""

    __tablename__ = "api_credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_expires_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    def to_credentials(self) -> PlatformCredentials:
        return PlatformCredentials(
            platform=self.platform,  # type: ignore[arg-type]
            access_token=self.access_token,
            user_id=self.user_id,
            refresh_token=self.refresh_token,
            token_expires_at=self.token_expires_at,
        )
