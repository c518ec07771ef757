"""API keys for the dashboard and public API."""

from datetime import datetime

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from autoblog.models.base import Base, TimestampMixin, new_id


class ApiKey(Base, TimestampMixin):
    """Hashed API key scoped to one organization."""

    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(100), default="default")
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    scopes: Mapped[list] = mapped_column(JSON, default=list)
    last_used_at: Mapped[datetime | None] = mapped_column()

    def has_scope(self, scope: str) -> bool:
        return scope in (self.scopes or []) or "*" in (self.scopes or [])

    def __repr__(self) -> str:
        return f"<ApiKey {self.name} org={self.organization_id}>"
