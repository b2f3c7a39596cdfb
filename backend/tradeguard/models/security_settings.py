# backend/tradeguard/models/security_settings.py
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tradeguard.db.base import Base


class SecuritySettings(Base):
    """
    Per-user security record. Rows are upserted and cleared, never deleted.
    Invariant: two_factor_enabled implies two_factor_secret is set.
    """

    __tablename__ = "security_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)

    # Stored as issued (unpadded base32); the database must encrypt at rest
    two_factor_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    two_factor_method: Mapped[str | None] = mapped_column(String(32), nullable=True)

    pin_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pin_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_pin_change: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, onupdate=datetime.utcnow, nullable=True)
