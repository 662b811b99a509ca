from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
import enum


class StaffRole(enum.Enum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    JUDGE = "judge"
    COORDINATOR = "coordinator"
    VOLUNTEER = "volunteer"


class EventType(enum.Enum):
    SOLO = "Solo"
    GROUP = "Group"
    CULTURAL = "Cultural"
    MEGA = "Mega"


class EventFormat(enum.Enum):
    SINGLE = "single"
    DOUBLE = "double"
    GROUP = "group"


class EventStatus(enum.Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"


class ParticipantType(enum.Enum):
    INDIVIDUAL = "Individual"
    GROUP = "Group"


class AttendanceStatus(enum.Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"


class ResultsStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    RELEASED = "released"


class PerformanceStatus(enum.Enum):
    PENDING = "pending"
    PERFORMING = "performing"
    COMPLETED = "completed"


class ArtworkStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class Profile(Base):
    __tablename__ = "sigaram_profiles"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(SQLEnum(StaffRole), nullable=False, index=True)
    rights = Column(JSON, nullable=True)  # ["attendance", "scoring", "event_management"]
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ParticipantAccount(Base):
    __tablename__ = "sigaram_participants"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    ima_branch = Column(String(150), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class OtpChallenge(Base):
    __tablename__ = "sigaram_otp_challenges"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), index=True, nullable=False)
    purpose = Column(String(40), nullable=False)  # "admin_login" | "organizer_login"
    code_hash = Column(String(64), nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)


class Event(Base):
    __tablename__ = "sigaram_events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    category = Column(String(100), default="General")
    event_type = Column(SQLEnum(EventType), default=EventType.SOLO, nullable=False)
    format = Column(SQLEnum(EventFormat), default=EventFormat.SINGLE, nullable=False)
    location = Column(String(255), nullable=True)
    hall = Column(Integer, nullable=True)
    event_time = Column(DateTime(timezone=True), nullable=True)
    revised_time = Column(DateTime(timezone=True), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(EventStatus), default=EventStatus.UPCOMING, nullable=False)
    is_fine_arts_event = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    participants = relationship("EventParticipant", back_populates="event")


class EventParticipant(Base):
    __tablename__ = "sigaram_event_participants"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sigaram_events.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("sigaram_participants.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    team_name = Column(String(255), nullable=True)
    ima_branch = Column(String(150), nullable=False, default="Unknown")
    ima_branch_zone = Column(String(150), nullable=True)
    mobile = Column(String(20), nullable=True)
    participant_type = Column(SQLEnum(ParticipantType), default=ParticipantType.INDIVIDUAL, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    event = relationship("Event", back_populates="participants")
    members = relationship("TeamMember", back_populates="participant", order_by="TeamMember.id")


class TeamMember(Base):
    __tablename__ = "sigaram_team_members"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, ForeignKey("sigaram_event_participants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    mobile = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participant = relationship("EventParticipant", back_populates="members")


class Attendance(Base):
    __tablename__ = "sigaram_attendance"
    __table_args__ = (UniqueConstraint("event_id", "participant_id", name="uq_attendance_event_participant"),)

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sigaram_events.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("sigaram_event_participants.id"), nullable=False)
    status = Column(SQLEnum(AttendanceStatus), nullable=False)
    check_in_time = Column(DateTime(timezone=True), nullable=True)
    marked_by_id = Column(Integer, nullable=True)
    marked_by = Column(String(255), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Score(Base):
    __tablename__ = "sigaram_scores"
    __table_args__ = (UniqueConstraint("event_id", "participant_id", name="uq_score_event_participant"),)

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sigaram_events.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("sigaram_event_participants.id"), nullable=False)
    score = Column(Integer, nullable=False, default=0)  # marks awarded by the judges
    rank = Column(Integer, nullable=True)
    points = Column(Integer, nullable=False, default=0)  # branch points derived from rank
    judge_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ResultsApproval(Base):
    __tablename__ = "sigaram_results_approval"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sigaram_events.id"), unique=True, nullable=False)
    status = Column(SQLEnum(ResultsStatus), default=ResultsStatus.PENDING, nullable=False)
    approved_by = Column(String(255), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    released_at = Column(DateTime(timezone=True), nullable=True)


class ScoringConfig(Base):
    __tablename__ = "scoring_config"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(SQLEnum(EventType), unique=True, nullable=False)
    rank_1_score = Column(Integer, nullable=False, default=0)
    rank_2_score = Column(Integer, nullable=False, default=0)
    rank_3_score = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class EventPerformance(Base):
    __tablename__ = "sigaram_event_performances"
    __table_args__ = (UniqueConstraint("event_id", "participant_id", name="uq_performance_event_participant"),)

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sigaram_events.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("sigaram_event_participants.id"), nullable=False)
    slot_number = Column(Integer, nullable=True)
    status = Column(SQLEnum(PerformanceStatus), default=PerformanceStatus.PENDING, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Artwork(Base):
    __tablename__ = "sigaram_fine_arts_artworks"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, ForeignKey("sigaram_participants.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("sigaram_events.id"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=False)
    status = Column(SQLEnum(ArtworkStatus), default=ArtworkStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participant = relationship("ParticipantAccount")
    event = relationship("Event")


class ArtworkComment(Base):
    __tablename__ = "sigaram_fine_arts_comments"

    id = Column(Integer, primary_key=True, index=True)
    artwork_id = Column(Integer, ForeignKey("sigaram_fine_arts_artworks.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("sigaram_participants.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participant = relationship("ParticipantAccount")


class Product(Base):
    __tablename__ = "store_products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    subtitle = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    is_published = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    variants = relationship("ProductVariant", back_populates="product", order_by="ProductVariant.id")


class ProductVariant(Base):
    __tablename__ = "store_product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("store_products.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=True)
    price_in_cents = Column(Integer, nullable=False)
    sale_price_in_cents = Column(Integer, nullable=True)
    manage_inventory = Column(Boolean, default=False)
    inventory_quantity = Column(Integer, default=0)
    image_url = Column(String(500), nullable=True)

    product = relationship("Product", back_populates="variants")


class Order(Base):
    __tablename__ = "store_orders"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=True)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    total_in_cents = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")


class OrderItem(Base):
    __tablename__ = "store_order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("store_orders.id"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("store_product_variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_in_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    variant = relationship("ProductVariant")


class ContactMessage(Base):
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class MembershipApplication(Base):
    __tablename__ = "membership_applications"

    id = Column(Integer, primary_key=True, index=True)
    membership_type = Column(String(50), nullable=False)
    doctor1 = Column(JSON, nullable=False)
    doctor2 = Column(JSON, nullable=True)
    address = Column(Text, nullable=True)
    declaration_accepted = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, nullable=True)
    admin_email = Column(String(255), nullable=False)
    admin_name = Column(String(255), nullable=False)
    action = Column(String(255), nullable=False)
    method = Column(String(10), nullable=True)
    path = Column(String(255), nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SystemConfig(Base):
    __tablename__ = "system_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(String(500), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
