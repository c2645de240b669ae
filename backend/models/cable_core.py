from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from database import Base


class CableCore(Base):
    """A single fiber strand inside a cable; the unit splices attach to."""

    __tablename__ = "cable_cores"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    cable_id = Column(
        Integer, ForeignKey("cables.id", ondelete="CASCADE"), nullable=False
    )
    core_index = Column(Integer, nullable=False)  # 1-based within the cable

    tube_color = Column(String(20), nullable=True)
    core_color = Column(String(20), nullable=True)

    status = Column(String(20), nullable=False, default="VACANT")  # VACANT/USED/RESERVED/DAMAGED

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        UniqueConstraint("cable_id", "core_index", name="uq_cable_core_index"),
        Index("idx_cable_core_cable_id", "cable_id"),
        Index("idx_cable_core_status", "status"),
    )

    def __repr__(self):
        return f"<CableCore(id={self.id}, cable_id={self.cable_id}, index={self.core_index}, status={self.status})>"
