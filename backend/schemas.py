from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime

from models import (
    StaffRole,
    EventType,
    EventFormat,
    EventStatus,
    ParticipantType,
    AttendanceStatus,
    ResultsStatus,
    PerformanceStatus,
    ArtworkStatus,
    OrderStatus,
)


class StaffPortalEnum(str, Enum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    VOLUNTEER = "volunteer"
    COORDINATOR = "coordinator"
    JUDGE = "judge"


class RightEnum(str, Enum):
    ATTENDANCE = "attendance"
    SCORING = "scoring"
    EVENT_MANAGEMENT = "event_management"


class MembershipTypeEnum(str, Enum):
    SINGLE = "Single"
    LIFE = "Life"
    LIFE_COUPLE = "Life Couple"


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# Auth Schemas
class StaffLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6)

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not v.isdigit():
            raise ValueError('Code must contain only digits')
        return v


class OtpChallengeResponse(BaseModel):
    message: str
    email: EmailStr
    expires_in: int
    otp_required: bool = True
    debug_otp: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class StaffResponse(BaseModel):
    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    role: StaffRole
    rights: List[str] = []
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    otp_required: bool = False
    user: StaffResponse


# Staff provisioning
class StaffCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    role: StaffRole
    password: Optional[str] = Field(None, min_length=8)
    rights: List[RightEnum] = []

    @field_validator('role')
    @classmethod
    def validate_role(cls, v):
        if v == StaffRole.ADMIN:
            raise ValueError('Admin accounts cannot be created here')
        return v


class StaffCreateResponse(BaseModel):
    user: StaffResponse
    generated_password: Optional[str] = None
    email_sent: bool


class StaffRightsUpdate(BaseModel):
    rights: List[RightEnum]


class StaffStatusUpdate(BaseModel):
    is_active: bool


class StaffPasswordReset(BaseModel):
    new_password: Optional[str] = Field(None, min_length=8)


class AdminLogResponse(BaseModel):
    id: int
    admin_email: str
    admin_name: str
    action: str
    method: Optional[str] = None
    path: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Participant accounts
class ParticipantAccountCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    ima_branch: Optional[str] = Field(None, max_length=150)
    password: str = Field(..., min_length=8)


class ParticipantAccountLogin(BaseModel):
    email: EmailStr
    password: str


class ParticipantAccountResponse(BaseModel):
    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    ima_branch: Optional[str] = None

    class Config:
        from_attributes = True


class ParticipantTokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: ParticipantAccountResponse


# Events
class EventBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field("General", max_length=100)
    event_type: EventType = EventType.SOLO
    format: EventFormat = EventFormat.SINGLE
    location: Optional[str] = Field(None, max_length=255)
    hall: Optional[int] = Field(None, ge=1)
    event_time: Optional[datetime] = None
    revised_time: Optional[datetime] = None
    description: Optional[str] = None
    is_fine_arts_event: bool = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Event name is required')
        return v


class EventCreate(EventBase):
    status: EventStatus = EventStatus.UPCOMING


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    event_type: Optional[EventType] = None
    format: Optional[EventFormat] = None
    location: Optional[str] = Field(None, max_length=255)
    hall: Optional[int] = Field(None, ge=1)
    event_time: Optional[datetime] = None
    revised_time: Optional[datetime] = None
    description: Optional[str] = None
    is_fine_arts_event: Optional[bool] = None
    status: Optional[EventStatus] = None


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventResponse(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    event_type: EventType
    format: EventFormat
    location: Optional[str] = None
    hall: Optional[int] = None
    event_time: Optional[datetime] = None
    revised_time: Optional[datetime] = None
    description: Optional[str] = None
    status: EventStatus
    is_fine_arts_event: bool = True

    class Config:
        from_attributes = True


class BulkUploadResult(BaseModel):
    inserted: int
    skipped: int
    warnings: List[str] = []
    dry_run: bool = False
    preview: List[Dict[str, Any]] = []


# Entries (participants)
class MemberInput(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None


class EntryCreate(BaseModel):
    team_name: Optional[str] = Field(None, max_length=255)
    ima_branch: str = Field(..., min_length=1, max_length=150)
    ima_branch_zone: Optional[str] = Field(None, max_length=150)
    event_type: ParticipantType = ParticipantType.INDIVIDUAL
    members: List[MemberInput]
    details: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def drop_blank_members(self):
        kept = []
        for member in self.members:
            name = _strip_or_none(member.name)
            if not name:
                continue
            kept.append(MemberInput(name=name, email=_strip_or_none(member.email), mobile=_strip_or_none(member.mobile)))
        if not kept:
            raise ValueError('At least one member with a name is required')
        self.members = kept
        self.ima_branch = self.ima_branch.strip()
        self.team_name = _strip_or_none(self.team_name)
        return self


class SelfRegistrationCreate(EntryCreate):
    event_id: int


class EntryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    team_name: Optional[str] = Field(None, max_length=255)
    ima_branch: Optional[str] = Field(None, min_length=1, max_length=150)
    ima_branch_zone: Optional[str] = Field(None, max_length=150)
    mobile: Optional[str] = Field(None, max_length=20)
    participant_type: Optional[ParticipantType] = None
    event_id: Optional[int] = None


class EntryDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class MemberResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    mobile: Optional[str] = None

    class Config:
        from_attributes = True


class EntryResponse(BaseModel):
    id: int
    event_id: int
    event_name: Optional[str] = None
    name: str
    team_name: Optional[str] = None
    ima_branch: str
    ima_branch_zone: Optional[str] = None
    mobile: Optional[str] = None
    participant_type: ParticipantType
    members: List[MemberResponse] = []

    class Config:
        from_attributes = True


class PublicEntryResponse(BaseModel):
    id: int
    name: str
    team_name: Optional[str] = None
    ima_branch: str
    participant_type: ParticipantType
    members: List[str] = []


class EventDetailResponse(EventResponse):
    participants: List[PublicEntryResponse] = []


class DirectoryEntry(BaseModel):
    id: int
    event: str
    name: str
    team_name: Optional[str] = None
    branch: str
    zone: Optional[str] = None
    participant_type: ParticipantType


# Live views
class LiveStatusRow(BaseModel):
    id: int
    name: str
    hall: Optional[int] = None
    location: Optional[str] = None
    event_time: Optional[datetime] = None
    status: EventStatus
    participant_count: int
    results_released: bool


class TrackerParticipant(BaseModel):
    name: str
    branch: str
    rank: Optional[int] = None
    score: Optional[int] = None


class HallTracker(BaseModel):
    hall: Optional[int] = None
    current_event: Optional[EventResponse] = None
    top_participants: List[TrackerParticipant] = []
    performing: Optional[str] = None
    next_event: Optional[EventResponse] = None


# Attendance
class AttendanceMark(BaseModel):
    participant_id: int
    status: AttendanceStatus


class AttendanceBulkRequest(BaseModel):
    records: List[AttendanceMark] = Field(..., min_length=1)


class AttendanceRow(BaseModel):
    participant_id: int
    name: str
    team_name: Optional[str] = None
    ima_branch: str
    status: str
    check_in_time: Optional[datetime] = None
    marked_by: Optional[str] = None


class AttendanceStats(BaseModel):
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    pending: int = 0


class AttendanceReport(BaseModel):
    event: EventResponse
    rows: List[AttendanceRow]
    stats: AttendanceStats


# Scoring
class ScoringConfigItem(BaseModel):
    event_type: EventType
    rank_1_score: int = Field(..., ge=0)
    rank_2_score: int = Field(..., ge=0)
    rank_3_score: int = Field(..., ge=0)

    class Config:
        from_attributes = True


class ScoringConfigUpdate(BaseModel):
    items: List[ScoringConfigItem] = Field(..., min_length=1)


class ScoreInput(BaseModel):
    participant_id: int
    score: int = Field(..., ge=0)


class ScoreSubmitRequest(BaseModel):
    scores: List[ScoreInput] = Field(..., min_length=1)


class ScoredEntry(BaseModel):
    participant_id: int
    name: str
    team_name: Optional[str] = None
    ima_branch: str
    score: Optional[int] = None
    rank: Optional[int] = None
    points: int = 0


class BranchStandingResponse(BaseModel):
    branch: str
    total_points: float
    rank: int
    participants: List[str] = []
    events_count: int = 0


class ScoringDashboard(BaseModel):
    event: EventResponse
    entries: List[ScoredEntry]
    standings: List[BranchStandingResponse]
    approval_status: ResultsStatus


class ApprovalResponse(BaseModel):
    event_id: int
    status: ResultsStatus
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    released_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventResult(BaseModel):
    event_id: int
    event_name: str
    event_type: EventType
    category: Optional[str] = None
    released_at: Optional[datetime] = None
    podium: List[BranchStandingResponse]


# Performances
class PerformanceUpdate(BaseModel):
    slot_number: Optional[int] = Field(None, ge=1)
    status: Optional[PerformanceStatus] = None


class PerformanceRow(BaseModel):
    participant_id: int
    name: str
    team_name: Optional[str] = None
    ima_branch: str
    slot_number: Optional[int] = None
    status: PerformanceStatus


# Data management
class DataResetRequest(BaseModel):
    confirmation: str


class DataResetResponse(BaseModel):
    message: str
    deleted: Dict[str, int]


# Gallery
class ArtworkCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: str = Field(..., min_length=1, max_length=500)
    event_id: Optional[int] = None

    @field_validator('image_url')
    @classmethod
    def validate_image_url(cls, v):
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError('image_url must be an http/https URL')
        return v


class ArtworkStatusUpdate(BaseModel):
    status: ArtworkStatus


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: int
    content: str
    author: str
    created_at: Optional[datetime] = None


class ArtworkResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    image_url: str
    status: ArtworkStatus
    event_id: Optional[int] = None
    event_name: Optional[str] = None
    participant_id: int
    artist: str
    created_at: Optional[datetime] = None
    comments: List[CommentResponse] = []


# Store
class VariantCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    price_in_cents: int = Field(..., ge=0)
    sale_price_in_cents: Optional[int] = Field(None, ge=0)
    manage_inventory: bool = False
    inventory_quantity: int = Field(0, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)


class VariantUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    price_in_cents: Optional[int] = Field(None, ge=0)
    sale_price_in_cents: Optional[int] = Field(None, ge=0)
    manage_inventory: Optional[bool] = None
    inventory_quantity: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    subtitle: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    is_published: bool = True
    variants: List[VariantCreate] = []


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    subtitle: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    is_published: Optional[bool] = None


class VariantResponse(BaseModel):
    id: int
    title: str
    sku: Optional[str] = None
    price_in_cents: int
    sale_price_in_cents: Optional[int] = None
    price_formatted: str
    sale_price_formatted: Optional[str] = None
    manage_inventory: bool
    inventory_quantity: Optional[int] = None
    in_stock: bool
    image_url: Optional[str] = None


class ProductResponse(BaseModel):
    id: int
    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_published: bool
    variants: List[VariantResponse] = []


class CartItem(BaseModel):
    variant_id: int
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    email: Optional[EmailStr] = None
    items: List[CartItem] = Field(..., min_length=1)


class OrderItemResponse(BaseModel):
    variant_id: int
    product_title: str
    variant_title: str
    quantity: int
    unit_price_in_cents: int
    unit_price_formatted: str


class OrderResponse(BaseModel):
    id: int
    email: Optional[str] = None
    status: OrderStatus
    total_in_cents: int
    total_formatted: str
    items: List[OrderItemResponse]
    created_at: Optional[datetime] = None


# Site
class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    subject: Optional[str] = Field(None, max_length=255)
    message: str = Field(..., min_length=1)


class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DoctorDetails(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    registration_number: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    qualification: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = None


class MembershipApplicationCreate(BaseModel):
    membership_type: MembershipTypeEnum
    doctor1: DoctorDetails
    doctor2: Optional[DoctorDetails] = None
    address: Optional[str] = None
    declaration_accepted: bool

    @model_validator(mode="after")
    def validate_application(self):
        if not self.declaration_accepted:
            raise ValueError('The declaration must be accepted')
        if self.membership_type == MembershipTypeEnum.LIFE_COUPLE and not self.doctor2:
            raise ValueError('Life Couple membership requires details of both doctors')
        if self.membership_type != MembershipTypeEnum.LIFE_COUPLE:
            self.doctor2 = None
        return self


class MembershipApplicationResponse(BaseModel):
    id: int
    membership_type: str
    doctor1: Dict[str, Any]
    doctor2: Optional[Dict[str, Any]] = None
    address: Optional[str] = None
    declaration_accepted: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class RegistrationConfig(BaseModel):
    registration_open: bool
