from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, ForeignKey, Index
from database import Base


class Cable(Base):
    """SQLAlchemy model for fiber cables running between two nodes."""

    __tablename__ = "cables"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=True)
    type = Column(String(20), nullable=False)  # ADSS/DUCT/DROP
    core_count = Column(Integer, nullable=False)  # fixed at creation
    length_meter = Column(Float, nullable=True)

    # Endpoints (either may be unset while the cable is being laid)
    origin_node_id = Column(Integer, ForeignKey("nodes.id"), nullable=True)
    dest_node_id = Column(Integer, ForeignKey("nodes.id"), nullable=True)

    # Route as [[lng, lat], ...]
    path_coordinates = Column(JSON, nullable=True)

    color_hex = Column(String(7), nullable=False, default="#000000")
    status = Column(String(20), nullable=False, default="ACTIVE")

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_cable_type", "type"),
        Index("idx_cable_status", "status"),
        Index("idx_cable_origin_node", "origin_node_id"),
        Index("idx_cable_dest_node", "dest_node_id"),
    )

    def __repr__(self):
        return f"<Cable(id={self.id}, type={self.type}, cores={self.core_count})>"
