from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from villa_planning.db.base import Base


class OnCallDuty(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"), index=True)
    period_label: Mapped[Optional[str]] = mapped_column(String(16))
    replacement_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    @property
    def status(self) -> str:
        return "assigned" if self.user_id is not None else "unassigned"
