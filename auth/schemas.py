from typing import Optional, Literal

from pydantic import BaseModel


class RegisterSchema(BaseModel):
    username: str
    password: str
    confirm_password: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[str] = None


class LoginSchema(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


class UserCreateSchema(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None


class RoleUpdateSchema(BaseModel):
    role: Literal["admin", "teacher", "student"]


class ProfileUpdateSchema(BaseModel):
    first_name: Optional[str] = None
    email: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[str] = None


class ProfileImageSchema(BaseModel):
    image_url: Optional[str] = None
