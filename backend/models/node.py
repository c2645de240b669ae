from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Index
from database import Base


class Node(Base):
    """SQLAlchemy model for network locations (OLT, ODC, ODP, closures, poles)."""

    __tablename__ = "nodes"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Identity
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)  # OLT/ODC/ODP/CLOSURE/POLE/CUSTOMER
    model = Column(String(255), nullable=True)

    # Location
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(500), nullable=True)

    # Port accounting
    capacity_ports = Column(Integer, nullable=False, default=8)
    used_ports = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default="ACTIVE")

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_node_type", "type"),
        Index("idx_node_status", "status"),
        Index("idx_node_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self):
        return f"<Node(id={self.id}, name={self.name}, type={self.type})>"
