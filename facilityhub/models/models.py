import uuid
from datetime import datetime, time
from typing import Optional, List

from sqlalchemy import (
    String,
    DateTime,
    Time,
    ForeignKey,
    Integer,
    JSON,
    Boolean,
    UniqueConstraint,
    CheckConstraint,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)  # Identity provider subject
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    username: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")  # admin|technician|manager|member|user|guest
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=datetime.utcnow)

    permissions: Mapped[List["UserPermission"]] = relationship(
        "UserPermission", back_populates="user", cascade="all, delete-orphan"
    )
    schedules = relationship("Schedule", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> Optional[str]:
        name = " ".join(x for x in [self.first_name, self.last_name] if x)
        return name or self.username or self.email


class Permission(Base):
    """Catalog entry for a single `<resource>_<action>` capability"""
    __tablename__ = "permissions"

    id: Mapped[uuid.UUID] = uuid_pk()
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    group: Mapped[Optional[str]] = mapped_column(String(100))


class UserPermission(Base):
    """Explicit grant on top of the user's role baseline"""
    __tablename__ = "user_permissions"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    user = relationship("User", back_populates="permissions")
    permission = relationship("Permission", lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "permission_id", name="uq_user_permission"),
    )


# =====================
# Facility hierarchy
# =====================

class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500))
    description: Mapped[Optional[str]] = mapped_column(String(2000))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    floors = relationship("Floor", back_populates="building", order_by="Floor.number")


class Floor(Base):
    __tablename__ = "floors"

    id: Mapped[uuid.UUID] = uuid_pk()
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    building_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("buildings.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    building = relationship("Building", back_populates="floors")
    rooms = relationship("Room", back_populates="floor", order_by="Room.number")


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = uuid_pk()
    number: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(50), default="OTHER")  # CLASSROOM|OFFICE|LABORATORY|STORAGE|OTHER
    floor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("floors.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    floor = relationship("Floor", back_populates="rooms")
    assets = relationship("Asset", back_populates="room")
    schedules = relationship("Schedule", back_populates="room", cascade="all, delete-orphan")


# =====================
# Inventory
# =====================

class Asset(Base):
    """Uniquely tagged, non-fungible item located in exactly one room"""
    __tablename__ = "assets"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_tag: Mapped[Optional[str]] = mapped_column(String(100), unique=True, index=True)
    asset_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # COMPUTER|PRINTER|PROJECTOR|NETWORK_EQUIPMENT|OTHER
    system_unit: Mapped[Optional[str]] = mapped_column(String(255))  # Serial of the system unit
    monitor: Mapped[Optional[str]] = mapped_column(String(255))  # Serial of the monitor
    ups: Mapped[Optional[str]] = mapped_column(String(255))  # Serial of the UPS
    status: Mapped[str] = mapped_column(String(50), default="WORKING", index=True)  # WORKING|NEEDS_REPAIR|OUT_OF_SERVICE|UNDER_MAINTENANCE
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    room_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    room = relationship("Room", back_populates="assets")


class StorageItem(Base):
    """Quantity-bearing inventory record"""
    __tablename__ = "storage_items"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # CABLE|SOFTWARE|HARDWARE|COMPUTER_PART
    sub_type: Mapped[Optional[str]] = mapped_column(String(50))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit: Mapped[Optional[str]] = mapped_column(String(50))
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    serial_numbers: Mapped[list] = mapped_column(JSON, default=list)  # Array of serial number strings
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_storage_item_quantity_non_negative"),
    )


class DeploymentRecord(Base):
    """Append-only ledger entry for a single transfer into a room"""
    __tablename__ = "deployment_records"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("assets.id", ondelete="RESTRICT"), index=True)
    storage_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("storage_items.id", ondelete="RESTRICT"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    serial_number: Mapped[Optional[str]] = mapped_column(String(255))
    from_room_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="SET NULL"))
    to_room_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="RESTRICT"), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    deployed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    asset = relationship("Asset")
    storage_item = relationship("StorageItem")
    to_room = relationship("Room", foreign_keys=[to_room_id])
    from_room = relationship("Room", foreign_keys=[from_room_id])

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_deployment_quantity_positive"),
    )


# =====================
# Tickets
# =====================

class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = uuid_pk()
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="OPEN", index=True)  # OPEN|IN_PROGRESS|RESOLVED|CLOSED
    priority: Mapped[str] = mapped_column(String(20), default="MEDIUM")  # LOW|MEDIUM|HIGH|CRITICAL
    ticket_type: Mapped[str] = mapped_column(String(30), default="ISSUE_REPORT", index=True)  # ISSUE_REPORT|ROOM_REQUEST|ASSET_REQUEST
    asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("assets.id", ondelete="SET NULL"))
    room_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="SET NULL"))
    created_by_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    moderator_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    comments = relationship(
        "TicketComment", back_populates="ticket", cascade="all, delete-orphan",
        order_by="TicketComment.created_at.desc()",
    )

    __table_args__ = (
        Index("idx_ticket_status_type", "status", "ticket_type"),
    )


class TicketComment(Base):
    __tablename__ = "ticket_comments"

    id: Mapped[uuid.UUID] = uuid_pk()
    ticket_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    ticket = relationship("Ticket", back_populates="comments")


# =====================
# Scheduling
# =====================

class Schedule(Base):
    """Weekly recurring room reservation"""
    __tablename__ = "schedules"

    id: Mapped[uuid.UUID] = uuid_pk()
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(2000))
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)  # monday..saturday
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    user = relationship("User", back_populates="schedules")
    room = relationship("Room", back_populates="schedules")
    attendances = relationship("Attendance", back_populates="schedule", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_schedule_room_day", "room_id", "day_of_week"),
    )


class Attendance(Base):
    """Sign-in for one session of a schedule, with the room's equipment checklist"""
    __tablename__ = "attendance"

    id: Mapped[uuid.UUID] = uuid_pk()
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    section: Mapped[str] = mapped_column(String(100), nullable=False)
    year_level: Mapped[str] = mapped_column(String(50), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    # Equipment checklist: True means present and working
    system_unit: Mapped[bool] = mapped_column(Boolean, nullable=False)
    keyboard: Mapped[bool] = mapped_column(Boolean, nullable=False)
    mouse: Mapped[bool] = mapped_column(Boolean, nullable=False)
    internet: Mapped[bool] = mapped_column(Boolean, nullable=False)
    ups: Mapped[bool] = mapped_column(Boolean, nullable=False)
    schedule_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("tickets.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    schedule = relationship("Schedule", back_populates="attendances")
