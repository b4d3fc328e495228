# backend/rentline/schemas.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


# -------------------- Value sets --------------------

UserRole = Literal["admin", "landlord", "tenant"]
UserStatus = Literal["active", "suspended", "pending"]
PropertyStatus = Literal["active", "inactive", "maintenance"]
UnitStatus = Literal["available", "occupied", "maintenance", "reserved"]
UnitType = Literal["studio", "bedsitter", "1br", "2br", "3br", "4br+"]
ApplicationStatus = Literal["pending", "approved", "rejected", "withdrawn"]
RecommendationStatus = Literal["pending", "recommended", "not_recommended"]
LeaseStatus = Literal["pending", "active", "ended", "terminated"]
PaymentFrequency = Literal["monthly", "quarterly", "annually"]
PaymentStatus = Literal["paid", "pending", "overdue", "partial"]
PaymentMethod = Literal["mpesa", "bank_transfer", "cash", "cheque"]
MaintenancePriority = Literal["low", "medium", "high", "urgent"]
MaintenanceStatus = Literal["open", "in_progress", "completed", "cancelled"]
MaintenanceCategory = Literal[
    "plumbing", "electrical", "hvac", "appliance", "structural", "pest_control", "other"
]
ActivityType = Literal[
    "user_created",
    "application_submitted",
    "application_approved",
    "lease_created",
    "payment_received",
    "maintenance_opened",
    "maintenance_completed",
]


def utcnow() -> datetime:
    """Naive UTC, the convention every stored timestamp follows."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Record(BaseModel):
    """
    Immutable snapshot of a store row.

    Wire format is camelCase (landlordId, unitNumber, ...); Python code uses
    snake_case. Aware datetimes are normalized to naive UTC so rows coming from
    different sources sort against each other.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @field_validator("*", mode="after")
    @classmethod
    def _naive_utc(cls, v: Any) -> Any:
        if isinstance(v, datetime) and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    def wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# -------------------- Entities --------------------

class User(Record):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: str = ""
    role: UserRole
    status: UserStatus = "active"
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Property(Record):
    id: str
    name: str
    address: str
    city: str
    county: str = ""
    description: str = ""
    image_urls: tuple[str, ...] = ()
    landlord_id: str
    total_units: int = 0
    occupied_units: int = 0
    amenities: tuple[str, ...] = ()
    status: PropertyStatus = "active"
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _occupancy_bounded(self):
        if self.occupied_units > self.total_units:
            raise ValueError("occupiedUnits cannot exceed totalUnits")
        return self


class Unit(Record):
    id: str
    property_id: str
    unit_number: str
    type: UnitType = "1br"
    bedrooms: int = 0
    bathrooms: int = 0
    square_meters: float = 0.0
    rent_amount: float
    deposit_amount: float = 0.0
    status: UnitStatus = "available"
    floor: int = 0
    amenities: tuple[str, ...] = ()
    image_urls: tuple[str, ...] = ()
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _rent_not_negative(self):
        if self.rent_amount < 0:
            raise ValueError("rentAmount must be >= 0")
        return self


class Application(Record):
    id: str
    unit_id: str
    tenant_id: str
    status: ApplicationStatus = "pending"
    landlord_recommendation: RecommendationStatus = "pending"
    landlord_notes: Optional[str] = None
    admin_notes: Optional[str] = None
    employment_status: str = ""
    monthly_income: float = 0.0
    emergency_contact: str = ""
    emergency_phone: str = ""
    move_in_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class Lease(Record):
    id: str
    unit_id: str
    tenant_id: str
    start_date: date
    end_date: date
    rent_amount: float
    deposit_amount: float = 0.0
    payment_frequency: PaymentFrequency = "monthly"
    status: LeaseStatus = "pending"
    terms: Optional[str] = None
    termination_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _dates_ordered(self):
        if not self.start_date < self.end_date:
            raise ValueError("lease startDate must be before endDate")
        return self


class Payment(Record):
    id: str
    lease_id: str
    tenant_id: str
    amount: float
    due_date: date
    paid_date: Optional[date] = None
    status: PaymentStatus = "pending"
    method: Optional[PaymentMethod] = None
    transaction_ref: Optional[str] = None
    late_fee: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _amounts_valid(self):
        if self.amount <= 0:
            raise ValueError("payment amount must be > 0")
        if self.late_fee is not None and self.late_fee < 0:
            raise ValueError("lateFee must be >= 0")
        return self


class MaintenanceComment(Record):
    id: str
    request_id: str
    user_id: str
    content: str
    created_at: datetime


class MaintenanceRequest(Record):
    id: str
    unit_id: str
    tenant_id: str
    category: MaintenanceCategory = "other"
    title: str
    description: str = ""
    priority: MaintenancePriority = "medium"
    status: MaintenanceStatus = "open"
    assigned_to: Optional[str] = None
    image_urls: tuple[str, ...] = ()
    comments: tuple[MaintenanceComment, ...] = ()
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("comments", mode="after")
    @classmethod
    def _comments_in_order(cls, v: tuple[MaintenanceComment, ...]) -> tuple[MaintenanceComment, ...]:
        return tuple(sorted(v, key=lambda c: c.created_at))


class Message(Record):
    id: str
    sender_id: str
    receiver_id: str
    subject: str
    content: str
    read: bool = False
    created_at: datetime


class Activity(Record):
    id: str
    type: ActivityType
    user_id: str
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


# -------------------- Envelopes --------------------

class Envelope(BaseModel, Generic[T]):
    """Uniform store response: callers check `success` before trusting `data`."""

    data: Optional[T] = None
    success: bool
    message: Optional[str] = None
    # machine-readable failure kind, e.g. "conflict" for a constraint violation
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "Envelope":
        return cls(data=data, success=True)

    @classmethod
    def fail(cls, message: str, error: Optional[str] = None) -> "Envelope":
        return cls(data=None, success=False, message=message, error=error)


class Page(Record, Generic[T]):
    data: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


# -------------------- Enriched rows --------------------

class UnitRef(Record):
    unit_number: str
    rent_amount: float = 0.0
    type: Optional[str] = None


class PropertyRef(Record):
    name: str
    city: Optional[str] = None


class PersonRef(Record):
    id: Optional[str] = None
    first_name: str
    last_name: str
    phone: str
    email: str
    role: Optional[UserRole] = None
    known: bool = True

    @property
    def display_name(self) -> str:
        if not self.known:
            return self.first_name
        return f"{self.first_name} {self.last_name}".strip()


class EnrichedUnit(Unit):
    kind: Literal["unit"] = "unit"
    property: PropertyRef


class EnrichedApplication(Application):
    kind: Literal["application"] = "application"
    unit: UnitRef
    property: PropertyRef
    tenant: PersonRef


class EnrichedLease(Lease):
    kind: Literal["lease"] = "lease"
    unit: UnitRef
    property: PropertyRef
    tenant: PersonRef


class EnrichedPayment(Payment):
    kind: Literal["payment"] = "payment"
    unit: UnitRef
    property: PropertyRef
    tenant: PersonRef


class EnrichedMaintenanceRequest(MaintenanceRequest):
    kind: Literal["maintenance"] = "maintenance"
    unit: UnitRef
    property: PropertyRef
    tenant: PersonRef


class EnrichedMessage(Message):
    kind: Literal["message"] = "message"
    sender: PersonRef
    receiver: PersonRef


class Listing(Unit):
    property: Property


# -------------------- Dashboard stats --------------------

class AdminStats(Record):
    role: Literal["admin"] = "admin"
    total_properties: int
    total_units: int
    occupancy_rate: float
    total_revenue: float
    pending_applications: int
    open_maintenance_requests: int
    overdue_payments: int
    active_leases: int


class LandlordStats(Record):
    role: Literal["landlord"] = "landlord"
    my_properties: int
    my_units: int
    occupancy_rate: float
    pending_applications: int
    open_maintenance_requests: int
    overdue_payments: int
    active_leases: int


class TenantStats(Record):
    role: Literal["tenant"] = "tenant"
    current_lease: Optional[Lease] = None
    next_payment_due: Optional[Payment] = None
    open_maintenance_requests: int
    unread_messages: int


# -------------------- Requests --------------------

class ApplicationStatusIn(Record):
    status: ApplicationStatus
    notes: Optional[str] = None


class RecommendationIn(Record):
    recommendation: RecommendationStatus
    notes: Optional[str] = None


class LeaseStatusIn(Record):
    status: LeaseStatus
    reason: Optional[str] = None


class RecordPaymentIn(Record):
    method: PaymentMethod
    transaction_ref: Optional[str] = None
    notes: Optional[str] = None


class MaintenanceStatusIn(Record):
    status: MaintenanceStatus


class CommentIn(Record):
    content: str = Field(min_length=1, pattern=r"\S")


class MessageIn(Record):
    receiver_id: str
    subject: str = Field(min_length=1)
    content: str = Field(min_length=1)


class ProfilePatch(Record):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class PaymentStatusIn(Record):
    status: PaymentStatus
    late_fee: Optional[float] = Field(default=None, ge=0)


class ApplicationIn(Record):
    unit_id: str
    employment_status: str = ""
    monthly_income: float = Field(default=0.0, ge=0)
    emergency_contact: str = ""
    emergency_phone: str = ""
    move_in_date: Optional[date] = None


class MaintenanceIn(Record):
    unit_id: str
    title: str = Field(min_length=1)
    description: str = ""
    category: MaintenanceCategory = "other"
    priority: MaintenancePriority = "medium"


class LeaseIn(Record):
    unit_id: str
    tenant_id: str
    start_date: date
    end_date: date
    rent_amount: Optional[float] = Field(default=None, ge=0)
    deposit_amount: Optional[float] = Field(default=None, ge=0)
    payment_frequency: PaymentFrequency = "monthly"
    status: Literal["pending", "active"] = "active"
    terms: Optional[str] = None

    @model_validator(mode="after")
    def _dates_ordered(self):
        if not self.start_date < self.end_date:
            raise ValueError("lease startDate must be before endDate")
        return self


class PaymentIn(Record):
    lease_id: str
    amount: float = Field(gt=0)
    due_date: date
    notes: Optional[str] = None


class UserIn(Record):
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str = ""
    role: UserRole
    status: UserStatus = "active"


class UserStatusIn(Record):
    status: UserStatus
