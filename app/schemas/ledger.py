from datetime import datetime, timezone
from enum import Enum
from typing import List
from pydantic import BaseModel, field_validator

# Records handed to the balance manager by the data-access layer.


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    # naive timestamps (e.g. from SQLite) are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

class FriendStatus(str, Enum):
    ACCEPTED = "accepted"
    INVITED = "invited"
    PENDING = "pending"
    BLOCKED = "blocked"

class FriendRecord(BaseModel):
    counterparty_id: str
    status: FriendStatus
    balance: float
    name: str
    email: str | None = None
    avatar: str | None = None
    last_activity: datetime | None = None
    created_at: datetime

    @field_validator("last_activity", "created_at")
    @classmethod
    def to_utc(cls, value):
        return as_utc(value)

    class Config:
        from_attributes = True

class MemberProfile(BaseModel):
    full_name: str
    email: str | None = None
    avatar: str | None = None

class GroupMemberRecord(BaseModel):
    user_id: str
    user_data: MemberProfile
    is_active: bool = True

class GroupRecord(BaseModel):
    id: str
    name: str
    updated_at: datetime | None = None
    members: List[GroupMemberRecord] = []

    @field_validator("updated_at")
    @classmethod
    def to_utc(cls, value):
        return as_utc(value)

class SplitEntry(BaseModel):
    user_id: str
    amount: float
    is_paid: bool = False

    class Config:
        from_attributes = True

class ExpenseRecord(BaseModel):
    paid_by: str
    split_data: List[SplitEntry] = []
