from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index
from database import Base


class Customer(Base):
    """SQLAlchemy model for subscriber terminations."""

    __tablename__ = "customers"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Serving node
    node_id = Column(Integer, ForeignKey("nodes.id"), nullable=True)

    # Contact
    name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)

    # Terminal
    ont_sn = Column(String(100), nullable=True, index=True)
    subscription_type = Column(String(100), nullable=True)

    # Live state, written by the monitoring feed
    current_status = Column(String(20), nullable=False, default="OFFLINE")  # ONLINE/OFFLINE/LOS/POWER_OFF
    last_rx_power = Column(Float, nullable=True)  # dBm

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_customer_node_id", "node_id"),
        Index("idx_customer_status", "current_status"),
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, name={self.name}, status={self.current_status})>"
