import datetime

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class SignatureSnapshot(Base):
    """
    Append-only change log: one row per detected change in the signature count.
    The first observation is stored with change_amount = 0.
    """
    __tablename__ = "signature_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    signature_count = Column(BigInteger, nullable=False)
    goal = Column(BigInteger, nullable=False)
    change_amount = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (Index("idx_signature_snapshots_timestamp", "timestamp"),)
