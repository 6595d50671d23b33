from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from wasabi.database import Base


class IntroPreference(Base):
    """Sound played when a user joins voice, one row per Discord user."""

    __tablename__ = "intros"

    # Discord snowflake, stored as text like every other Discord id here
    user_id: Mapped[str] = mapped_column("id", String(32), primary_key=True)
    effect: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
