# backend/tradeguard/models/failed_attempt.py
from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tradeguard.db.base import Base


class FailedAttempt(Base):
    __tablename__ = "failed_attempts"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    failed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # epoch seconds, UTC
    last_attempt: Mapped[float] = mapped_column(Float, nullable=False)
