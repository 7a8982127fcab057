"""
Pydantic schemas for the FastAPI service.

Customer, profile, backup and form bodies are free-form documents, so they
are accepted as plain JSON objects rather than modelled field by field.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class StatusResponse(BaseModel):
    status: Literal["ok"]


class CreatedResponse(BaseModel):
    id: str


class ProfileResponse(BaseModel):
    profile: Optional[dict] = None


class CustomerResponse(BaseModel):
    customer: dict


class CustomerListResponse(BaseModel):
    customers: list[dict]


class DrawingPayload(BaseModel):
    drawing_data: Any


class DrawingResponse(BaseModel):
    customer_id: str
    drawing_data: Any


class BackupHistoryResponse(BaseModel):
    history: list[dict]
