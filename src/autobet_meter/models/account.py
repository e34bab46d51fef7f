# src/autobet_meter/models/account.py
"""SQLAlchemy model for metered accounts."""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from autobet_meter.db.session import Base


class Account(Base):
    """Prepaid balance for one client of the metered endpoints.

    One row per client id in the ``autobet`` table.
    """

    __tablename__ = "autobet"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
