"""
Router profile Pydantic schemas
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, Dict, Any
from datetime import datetime

class RouterProfileBase(BaseModel):
    """Base router profile schema"""
    name: str = Field(..., min_length=1, description="Display name of the router")
    address: str = Field(..., min_length=1, description="Host name or IP address")
    username: str = Field(..., min_length=1, description="Login user")
    is_active: bool = Field(False, description="Whether this is the active profile")

class RouterProfileCreate(RouterProfileBase):
    """Schema for creating a router profile"""
    password: str = Field(..., min_length=1, description="Login secret")

class RouterProfilePatch(BaseModel):
    """Partial update for a router profile.

    Only fields the caller actually supplied are applied; an explicit null
    is rejected because every profile field is required.
    """
    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    username: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        nulls = [name for name in self.model_fields_set if getattr(self, name) is None]
        if nulls:
            raise ValueError(f"fields cannot be null: {', '.join(sorted(nulls))}")
        return self

    def changes(self) -> Dict[str, Any]:
        """The supplied fields and their new values"""
        return {name: getattr(self, name) for name in self.model_fields_set}

class RouterProfileResponse(RouterProfileBase):
    """Schema for router profile response"""
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class RouterConnection(BaseModel):
    """Credentials needed to reach a router"""
    address: str = Field(..., min_length=1, description="Host name or IP address")
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class ConnectionResult(BaseModel):
    """Outcome of a router connection test"""
    success: bool
    message: str
    router_identity: Optional[str] = None
    kind: Optional[str] = Field(None, description="Failure kind when success is false")
