"""
Category model — the label a transaction is filed under.

Categories are managed by a separate service; the ledger only needs to
resolve a category_id for its owner and to show the category's name and
colour next to each transaction in listings.
"""

import uuid

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_api.database import Base
from ledger_api.dates import now


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
    )

    # Stored lower-cased by the category service
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # CSS colour used by the front end, e.g. "#ff8800"
    color: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    created_at: Mapped[str] = mapped_column(
        String(24),
        default=now,
        nullable=False,
    )
    updated_at: Mapped[str] = mapped_column(
        String(24),
        default=now,
        onupdate=now,
        nullable=False,
    )

    # --- Relationships ---
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="category",
    )
