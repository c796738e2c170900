from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional, Union
from datetime import date as date_type, datetime, time

from .models import BookingStatus, FacilityType, UserRole


# ----- Users -----
class UserBase(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    username: str
    email: EmailStr
    role: UserRole = UserRole.STUDENT
    student_id: Optional[str] = Field(default=None, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)


class UserCreate(UserBase):
    password: str = Field(min_length=8)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    student_id: Optional[str] = Field(default=None, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)


class UserOut(UserBase):
    id: int
    is_active: bool

    class Config:
        from_attributes = True


# ----- Facilities -----
class FacilityBase(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    location: str = Field(min_length=2, max_length=200)
    capacity: int = Field(gt=0)
    description: Optional[str] = None
    facility_type: FacilityType = FacilityType.ROOM
    amenities: Optional[str] = None
    image_url: Optional[str] = None
    requires_approval: bool = False


class FacilityCreate(FacilityBase):
    pass


class FacilityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    location: Optional[str] = Field(default=None, min_length=2, max_length=200)
    capacity: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None
    facility_type: Optional[FacilityType] = None
    amenities: Optional[str] = None
    image_url: Optional[str] = None
    requires_approval: Optional[bool] = None
    is_active: Optional[bool] = None


class FacilityOut(FacilityBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FacilityBrief(BaseModel):
    id: int
    name: str
    location: str
    capacity: int

    class Config:
        from_attributes = True


# ----- Bookings -----
# Times travel as "HH:MM" strings; the booking service parses and validates them.
class BookingCreate(BaseModel):
    facility_id: int
    date: date_type
    start_time: str
    end_time: str
    purpose: Optional[str] = Field(default=None, max_length=500)
    attendees: int = 1


class BookingUpdate(BaseModel):
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    purpose: Optional[str] = Field(default=None, max_length=500)
    attendees: Optional[int] = None
    # admin-only fields
    status: Optional[BookingStatus] = None
    admin_notes: Optional[str] = None


class BookingReview(BaseModel):
    admin_notes: Optional[str] = None


class BookingOut(BaseModel):
    id: int
    facility_id: int
    user_id: int
    date: date_type
    start_time: time
    end_time: time
    status: BookingStatus
    purpose: Optional[str] = None
    attendees: int
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingStats(BaseModel):
    total: int
    confirmed: int
    pending: int
    cancelled: int
    upcoming: int


class BookingListOut(BaseModel):
    count: int
    stats: BookingStats
    data: List[BookingOut]


class ConflictSummary(BaseModel):
    """What a caller learns about someone else's booking."""
    id: int
    date: date_type
    start_time: str
    end_time: str
    status: BookingStatus
    booked_by: Optional[str] = None


class ConflictCheckResponse(BaseModel):
    facility_id: int
    date: date_type
    start_time: time
    end_time: time
    available: bool
    conflicts: List[Union[BookingOut, ConflictSummary]]


# ----- Availability -----
class SlotOut(BaseModel):
    start: str
    end: str
    status: str  # available, pending, confirmed
    booking_id: Optional[int] = None
    booked_by: Optional[str] = None


class AvailabilitySummary(BaseModel):
    total: int
    available: int
    occupied: int


class AvailabilityResponse(BaseModel):
    facility: FacilityBrief
    date: date_type
    slots: List[SlotOut]
    summary: AvailabilitySummary


class DayAvailability(AvailabilitySummary):
    date: date_type
    day_of_week: str


class WeeklyAvailabilityResponse(BaseModel):
    facility: FacilityBrief
    start_date: date_type
    days: List[DayAvailability]


# ----- Auth -----
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    username: Optional[str] = None
    role: Optional[str] = None
