# commerce/schemas/catalogue.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class CategoryCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    description: str | None = None
    display_order: int = 0
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CategoryUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    display_order: int | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None
    display_order: int
    is_active: bool
    created_at: datetime


class ManufacturerCreate(SQLModel):
    """
    Payload for creating a manufacturer.

    category_ids: categories the manufacturer is listed under; the first
    one feeds generated SKUs.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    description: str | None = None
    website_url: str | None = None
    display_order: int = 0
    is_active: bool = True
    category_ids: list[uuid.UUID] = []

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ManufacturerUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    website_url: str | None = None
    display_order: int | None = None
    is_active: bool | None = None
    category_ids: list[uuid.UUID] | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ManufacturerRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None
    website_url: str | None = None
    display_order: int
    is_active: bool
    category_ids: list[uuid.UUID] = []
    logo_object_key: str | None = None
    logo_url: str | None = None
    created_at: datetime


class CompatibilityBrandCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CompatibilityBrandRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    created_at: datetime
