"""Password reset / email verification tokens."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.database import Base


class VerificationToken(Base):
    __tablename__ = "verification_tokens"

    # The token is the lookup key; identifier holds the email it was issued for
    token: Mapped[str] = mapped_column(String(255), primary_key=True)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
