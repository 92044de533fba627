"""
modules/inventory/models.py: ORM models for the inventory domain.

Owns tables: users, locations, server_models, servers, server_notes,
             server_transfers, server_details, activities, id_sequences

servers.location_id is a logical reference to locations.id, not a physical
foreign key: the storage layer checks it, the schema does not.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean,
    ForeignKey, Enum as SQLEnum, Text
)
from sqlalchemy.orm import relationship

from core.base import (
    Base, ServerStatus, ActivityType, LocationType, UserRole, _ENUM_VALUES, utcnow,
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)  # passlib bcrypt hash (salt embedded)
    full_name = Column(String(200))
    email = Column(String(255))
    role = Column(SQLEnum(UserRole, values_callable=_ENUM_VALUES), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Location(Base):
    """Depot, office or field site that holds servers."""
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    type = Column(SQLEnum(LocationType, values_callable=_ENUM_VALUES), nullable=False)
    address = Column(Text)
    capacity = Column(Integer, default=10, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class ServerModel(Base):
    """Catalogue entry used as the template for batch creation."""
    __tablename__ = "server_models"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    brand = Column(String(100), nullable=False)
    specs = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Server(Base):
    """Individual physical server."""
    __tablename__ = "servers"

    id = Column(Integer, primary_key=True)
    server_id = Column(String(50), unique=True, nullable=False, index=True)  # SRV-2026-001
    model = Column(String(200), nullable=False)
    model_id = Column(Integer, nullable=True, index=True)  # Catalogue model it was built from
    specs = Column(Text, nullable=False)
    location_id = Column(Integer, nullable=False, index=True)
    status = Column(SQLEnum(ServerStatus, values_callable=_ENUM_VALUES), nullable=False)

    # Access credentials (password encrypted at rest when a key is configured)
    ip_address = Column(String(64))
    username = Column(String(100))
    password = Column(String(500))

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    notes = relationship("ServerNote", back_populates="server", cascade="all, delete-orphan")
    transfers = relationship("ServerTransfer", back_populates="server", cascade="all, delete-orphan")
    details = relationship("ServerDetail", back_populates="server", cascade="all, delete-orphan")


class ServerNote(Base):
    __tablename__ = "server_notes"

    id = Column(Integer, primary_key=True)
    server_id = Column(Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True)
    note = Column(Text, nullable=False)
    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)
    updated_by = Column(Integer, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    server = relationship("Server", back_populates="notes")


class ServerTransfer(Base):
    """A completed location change. Never updated after insert."""
    __tablename__ = "server_transfers"

    id = Column(Integer, primary_key=True)
    server_id = Column(Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True)
    from_location_id = Column(Integer, nullable=False)
    to_location_id = Column(Integer, nullable=False)
    transferred_by = Column(Integer, nullable=False)
    transfer_date = Column(DateTime, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    server = relationship("Server", back_populates="transfers")


class ServerDetail(Base):
    """Virtual machine hosted on a physical server."""
    __tablename__ = "server_details"

    id = Column(Integer, primary_key=True)
    server_id = Column(Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True)
    vm_name = Column(String(200), nullable=False)
    ip_address = Column(String(64), nullable=False)
    username = Column(String(100), nullable=False)
    password = Column(String(500), nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    server = relationship("Server", back_populates="details")


class Activity(Base):
    """Append-only audit entry. server_id may outlive the server it names."""
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True)
    server_id = Column(Integer, nullable=True, index=True)
    type = Column(SQLEnum(ActivityType, values_callable=_ENUM_VALUES), nullable=False)
    description = Column(Text, nullable=False)
    user_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class IdSequence(Base):
    """Named monotonic counters (SQLite has no sequence objects)."""
    __tablename__ = "id_sequences"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
