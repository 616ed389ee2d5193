from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, JSON, UniqueConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hallbook.database import Base

# ================================
# Accounts
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user", index=True)
    phone = Column(String(50))
    address = Column(Text)
    business_name = Column(String(255))
    is_verified = Column(Boolean, default=False)
    is_blocked = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    halls = relationship("Hall", back_populates="owner", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="customer")

# ================================
# Venue Catalog
# ================================
class Hall(Base):
    __tablename__ = "halls"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    owner_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(100), nullable=False)
    pincode = Column(String(20), nullable=False)
    capacity = Column(Integer, nullable=False)
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    amenities = Column(JSON, default=list)
    is_available = Column(Boolean, default=True)
    approval_status = Column(String(20), default="pending", index=True)
    # Bumped on every booking write; the compare-and-swap token for the hall calendar
    calendar_revision = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="halls")
    slots = relationship("HallSlot", back_populates="hall", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="hall", cascade="all, delete-orphan")

# ================================
# Slot Ledger
# ================================
class HallSlot(Base):
    __tablename__ = "hall_slots"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    hall_id = Column(BigInteger, ForeignKey("halls.id"), nullable=False, index=True)
    customer_id = Column(BigInteger, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id", ondelete="SET NULL"), index=True)
    slot_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    duration_hours = Column(Numeric(5, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    platform_fee = Column(Numeric(10, 2), nullable=False, default=0)
    owner_commission = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default="not_applicable", index=True)
    status = Column(String(20), nullable=False, default="available", index=True)
    origin = Column(String(20), nullable=False, default="published")
    special_requirements = Column(Text)
    notes = Column(Text)
    actual_check_in = Column(DateTime)
    feedback_rating = Column(Integer)
    feedback_comment = Column(Text)
    cancellation_reason = Column(Text)
    cancellation_date = Column(DateTime)
    refund_amount = Column(Numeric(10, 2), nullable=False, default=0)
    is_recurring = Column(Boolean, default=False)
    recurring_pattern = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    hall = relationship("Hall", back_populates="slots")
    customer = relationship("User")
    booking = relationship("Booking", back_populates="slot")

    @hybrid_property
    def is_availability_slot(self):
        return self.status == "available"

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    hall_id = Column(BigInteger, ForeignKey("halls.id"), nullable=False, index=True)
    # Null for walk-in bookings entered by the hall owner
    customer_id = Column(BigInteger, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    total_hours = Column(Numeric(5, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False, default=0)
    owner_commission = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    special_requests = Column(Text)
    cancellation_reason = Column(Text)
    cancellation_date = Column(DateTime)
    refund_amount = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    hall = relationship("Hall", back_populates="bookings")
    customer = relationship("User", back_populates="bookings")
    slot = relationship("HallSlot", back_populates="booking", uselist=False)

    @property
    def slot_id(self):
        return self.slot.id if self.slot is not None else None

# ================================
# Revenue Ledger
# ================================
class OwnerRevenue(Base):
    __tablename__ = "owner_revenues"
    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_owner_revenues_booking_id"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    hall_owner_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    hall_id = Column(BigInteger, ForeignKey("halls.id", ondelete="SET NULL"), index=True)
    hall_name = Column(String(255), nullable=False)
    customer_id = Column(BigInteger, ForeignKey("users.id", ondelete="SET NULL"))
    customer_name = Column(String(255))
    customer_email = Column(String(255))
    customer_phone = Column(String(50), nullable=False, default="N/A")
    # Plain id, the snapshot outlives the booking row
    booking_id = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    duration_hours = Column(Numeric(5, 2))
    total_amount = Column(Numeric(10, 2), nullable=False)
    owner_commission = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="completed", index=True)
    completed_at = Column(DateTime, nullable=False)
    hall_city = Column(String(100))
    hall_state = Column(String(100))
    hall_address = Column(String(500))
    special_requests = Column(Text)
    payment_method = Column(String(50), default="online")
    transaction_id = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
