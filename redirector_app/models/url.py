from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, text
from sqlalchemy.sql import func
from redirector_app.database.connection import Base


class URL(Base):
    """
    A shortened URL.

    short_url is generated once and never changes. alias is chosen by the
    user and is unique among records that are not deleted; deleted records
    keep their alias for audit, so uniqueness is a partial index rather
    than a column constraint.
    """
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    original_url = Column(String, nullable=False)
    # Note: unique=True automatically creates an index in SQLAlchemy
    short_url = Column(String(64), unique=True, nullable=False)
    alias = Column(String(64), nullable=True, index=True)
    access_count = Column(Integer, nullable=False, default=0)
    deleted = Column(Boolean, nullable=False, default=False)
    rate_limit = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index(
            "uq_urls_live_alias",
            "alias",
            unique=True,
            sqlite_where=text("deleted = 0"),
            postgresql_where=text("NOT deleted"),
        ),
    )

    @property
    def has_rate_limit(self) -> bool:
        # 0 and NULL both mean "no limit"
        return bool(self.rate_limit)

    def __repr__(self) -> str:
        return f"<URL id={self.id} short_url={self.short_url!r} alias={self.alias!r}>"
