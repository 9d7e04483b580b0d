from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from camper.core.ids import gen_id
from camper.models.base import Base, JsonType


class SessionRecord(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("ses"))
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # None for anonymous sessions (flash only)
    user_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)

    # {"success": [...], "error": [...]}
    flash: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    touched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
