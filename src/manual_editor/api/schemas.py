"""Pydantic schemas for the manuals API.

Serialization models for auth, manual summaries and services. Manual
bodies themselves travel as ManualDocument.to_dict() payloads.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# AUTH SCHEMAS
# =============================================================================


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserInfo(BaseModel):
    id: str
    email: str
    role: str = ""


class LoginResponse(BaseModel):
    """Response for POST /auth/login."""

    access_token: str
    user: UserInfo | None = None


# =============================================================================
# MANUAL SCHEMAS
# =============================================================================


class ManualSummary(BaseModel):
    """Row of GET /manuals."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    service_code: str = Field(default="", alias="serviceCode")
    service_name: str = Field(default="", alias="serviceName")
    version: str = ""
    status: str = "DRAFT"
    updated_at: str = Field(default="", alias="updatedAt")


# =============================================================================
# SERVICE SCHEMAS
# =============================================================================


class ServiceCreate(BaseModel):
    """Request body for POST /services."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., pattern=r"^[A-Z0-9-]{3,20}$")
    name_ar: str = Field(..., min_length=1, max_length=255, alias="nameAr")
    name_en: str = Field(..., min_length=1, max_length=255, alias="nameEn")


class ServiceResponse(BaseModel):
    """Row of GET /services."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    code: str
    name_ar: str = Field(default="", alias="nameAr")
    name_en: str = Field(default="", alias="nameEn")
    created_at: str = Field(default="", alias="createdAt")
