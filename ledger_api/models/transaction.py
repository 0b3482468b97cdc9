"""
Transaction model — one dated money movement owned by a user.

Key fields:
  - date: canonical UTC string (YYYY-MM-DDTHH:mm:ss.sssZ). Stored as text on
    purpose: the fixed-width format sorts chronologically as a string, so
    range filters and series ordering are plain string comparisons.
  - amount: ALWAYS ciphertext ("<iv hex>:<cipher hex>"), never a number.
    Signed: expenses are negative, income positive.
  - recurrence_id: grouping key shared by every occurrence generated from one
    recurring request. A series is not a table of its own and the column
    carries no foreign key.
  - is_original_recurrence: true only on the earliest occurrence of a series.

Recurrence states (decided once, at creation):
  Standalone     — is_recurrent False, recurrence_id NULL
  SeriesOriginal — recurrence_id set, is_original_recurrence True
  SeriesMember   — recurrence_id set, is_original_recurrence False
"""

import uuid

from sqlalchemy import String, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_api.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Series suffix lookups: WHERE recurrence_id = ? AND date >= ?
        Index("ix_transactions_recurrence_id_date", "recurrence_id", "date"),
        # Owner listings filtered by date range
        Index("ix_transactions_owner_id_date", "owner_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Supplied by the auth layer; never changes
    owner_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
    )

    date: Mapped[str] = mapped_column(
        String(24),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Ciphertext: 32 hex chars of IV + ":" + hex ciphertext
    amount: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    category_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("categories.id"),
        nullable=False,
        index=True,
    )

    is_recurrent: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # "weekly", "monthly" or "yearly"
    recurrence_type: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )

    recurrence_end_date: Mapped[str | None] = mapped_column(
        String(24),
        nullable=True,
    )

    recurrence_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
    )

    is_original_recurrence: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Canonical strings, stamped by the engine (never by the caller)
    created_at: Mapped[str] = mapped_column(
        String(24),
        nullable=False,
    )
    updated_at: Mapped[str] = mapped_column(
        String(24),
        nullable=False,
    )

    # --- Relationships ---
    category: Mapped["Category"] = relationship(
        back_populates="transactions",
    )
