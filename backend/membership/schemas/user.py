"""Account schemas"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class ProfileFields(BaseModel):
    """Optional member profile fields shared by registration and profile edits"""
    name_with_initials: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    batch: Optional[str] = None
    admission_number: Optional[str] = None
    al_shy: Optional[str] = None
    university: Optional[str] = None
    faculty: Optional[str] = None
    university_level: Optional[str] = None
    engineering_field: Optional[str] = None


class RegisterRequest(ProfileFields):
    email: str = Field(..., max_length=255)
    password: str = Field(..., description="At least 6 characters")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("must be a valid email address")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdate(ProfileFields):
    """Self-service edit. Role, status and email are not editable here."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)


class AdminProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None


class AdminUserUpdate(ProfileUpdate):
    """Admin edit of another account's details. Status and role have their own routes."""
    is_active: Optional[bool] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class AdminCreateRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: str

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class RoleUpdate(BaseModel):
    role: str


class StatusUpdate(BaseModel):
    status: str


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BatchActionRequest(BaseModel):
    user_ids: List[str]
    action: str


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    member_id: Optional[str] = None
    role: str
    status: str
    is_admin: bool
    is_active: bool
    name_with_initials: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    batch: Optional[str] = None
    admission_number: Optional[str] = None
    al_shy: Optional[str] = None
    university: Optional[str] = None
    faculty: Optional[str] = None
    university_level: Optional[str] = None
    engineering_field: Optional[str] = None
    approved_by_id: Optional[str] = None
    approval_date: Optional[datetime] = None
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
