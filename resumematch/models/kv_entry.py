from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from resumematch.database import Base

class KVEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
