from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Index
from database import Base


class Connection(Base):
    """SQLAlchemy model for splices/patches joining two endpoints at a location."""

    __tablename__ = "connections"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Where the splice physically sits
    location_node_id = Column(Integer, ForeignKey("nodes.id"), nullable=True)

    # Endpoints are (type, id) pairs: CORE -> cable_cores.id, PORT -> port number/id
    input_type = Column(String(10), nullable=False)
    input_id = Column(Integer, nullable=False)
    output_type = Column(String(10), nullable=False)
    output_id = Column(Integer, nullable=False)

    loss_db = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_connection_location", "location_node_id"),
        Index("idx_connection_input", "input_type", "input_id"),
        Index("idx_connection_output", "output_type", "output_id"),
    )

    @property
    def input_key(self) -> tuple:
        return (self.input_type, self.input_id)

    @property
    def output_key(self) -> tuple:
        return (self.output_type, self.output_id)

    def __repr__(self):
        return (
            f"<Connection(id={self.id}, {self.input_type}:{self.input_id} -> "
            f"{self.output_type}:{self.output_id} @ node {self.location_node_id})>"
        )
