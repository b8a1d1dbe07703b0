from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import Optional, List
from datetime import datetime

from models.users import UserRole

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for creating accounts (admin only)
class UserCreate(UserBase):
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.STAFF

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Schema for paginated user list response
class UsersPage(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: UserRole

# Schema for activating / deactivating an account
class UserStatusUpdate(BaseModel):
    is_active: bool

# Self-service profile changes; email, role and status stay admin-only
class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=8)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_not_empty(self):
        if self.first_name is None and self.last_name is None and self.password is None:
            raise ValueError("Provide at least one field to update.")
        return self
