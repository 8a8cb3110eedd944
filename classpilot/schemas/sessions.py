from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class LoginRequest(BaseModel):
    username: str = Field(..., examples=["student1"])
    password: str
    clientId: Optional[str] = None


class UserProfile(BaseModel):
    username: str
    fullName: str
    avatar: str


class LoginResponse(BaseModel):
    token: str
    clientId: str
    user: UserProfile
    expiresAt: datetime


class SessionInfo(BaseModel):
    clientId: str
    issuedAt: Optional[datetime] = None
    expiresAt: datetime


class SessionResponse(BaseModel):
    user: UserProfile
    session: SessionInfo


class ClassroomResponse(BaseModel):
    message: str = "Classroom access granted"
    user: UserProfile
    session: SessionInfo
