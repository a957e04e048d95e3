"""Response schemas for the /users endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from worldleader.db.models import Continent, TransactionStatus


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    continent: Continent
    country_code: str
    current_continent_rank: int
    current_global_rank: int
    total_positions_purchased: int
    created_at: datetime


class ProfileStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_spent: float
    continent_users_count: int
    global_users_count: int
    continent_percentile: int
    global_percentile: int


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_usd: float
    positions_purchased: int
    status: TransactionStatus
    timestamp: datetime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    message: str
    read_status: bool
    created_at: datetime


class ProfileResponse(BaseModel):
    profile: UserProfile
    stats: ProfileStatsResponse
    transactions: list[TransactionResponse]
    notifications: list[NotificationResponse]


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int
