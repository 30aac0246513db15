from datetime import datetime
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String, Boolean, DateTime, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from drive_api.database import Base, utcnow


class Share(Base):
    __tablename__ = "shares"
    __table_args__ = (
        # one canonical public link per file
        Index(
            "uq_shares_public_file",
            "file_id",
            unique=True,
            postgresql_where=text("is_public"),
            sqlite_where=text("is_public"),
        ),
        UniqueConstraint("file_id", "grantee_email", name="uq_shares_file_grantee"),
    )

    # the share id is the capability handed out in public links
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    file_id: Mapped[str] = mapped_column(ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    grantee_email: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
