"""
HTTP routes for the Crine backend API.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response

from crine.config import get_settings
from crine.dependencies import get_data_service
from crine.schemas import (
    BackupHistoryResponse,
    CreatedResponse,
    CustomerListResponse,
    CustomerResponse,
    DrawingPayload,
    DrawingResponse,
    ProfileResponse,
    StatusResponse,
)
from crine.service import DataService, client_profile_fields
from shared.constants import MAX_BACKUP_HISTORY_LIMIT, MAX_DOCUMENT_ID_LENGTH
from shared.json_utils import to_json_compatible

router = APIRouter()

DocumentId = Annotated[str, Path(min_length=1, max_length=MAX_DOCUMENT_ID_LENGTH)]


@router.get("/profile", response_model=ProfileResponse)
def get_user_profile(service: DataService = Depends(get_data_service)):
    return ProfileResponse(profile=to_json_compatible(service.get_user_profile()))


@router.put("/profile", response_model=StatusResponse)
def set_user_profile(
    fields: dict[str, Any] = Body(...),
    service: DataService = Depends(get_data_service),
):
    service.set_user_profile(client_profile_fields(fields))
    return StatusResponse(status="ok")


@router.get("/customers", response_model=CustomerListResponse)
def get_customers(service: DataService = Depends(get_data_service)):
    return CustomerListResponse(customers=to_json_compatible(service.get_customers()))


@router.post("/customers", response_model=CreatedResponse, status_code=201)
def add_customer(
    fields: dict[str, Any] = Body(...),
    service: DataService = Depends(get_data_service),
):
    return CreatedResponse(id=service.add_customer(fields))


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: DocumentId,
    service: DataService = Depends(get_data_service),
):
    customer = service.get_customer(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return CustomerResponse(customer=to_json_compatible(customer))


@router.patch("/customers/{customer_id}", response_model=StatusResponse)
def update_customer(
    customer_id: DocumentId,
    fields: dict[str, Any] = Body(...),
    service: DataService = Depends(get_data_service),
):
    service.update_customer(customer_id, fields)
    return StatusResponse(status="ok")


@router.delete("/customers/{customer_id}", status_code=204)
def delete_customer(
    customer_id: DocumentId,
    service: DataService = Depends(get_data_service),
):
    service.delete_customer(customer_id)
    return Response(status_code=204)


@router.get("/drawings/{customer_id}", response_model=DrawingResponse)
def get_drawing(
    customer_id: DocumentId,
    service: DataService = Depends(get_data_service),
):
    """Returns drawing_data null when no drawing is stored, like the facade."""
    drawing_data = service.get_drawing(customer_id)
    return DrawingResponse(
        customer_id=customer_id, drawing_data=to_json_compatible(drawing_data)
    )


@router.put("/drawings/{customer_id}", response_model=StatusResponse)
def save_drawing(
    payload: DrawingPayload,
    customer_id: DocumentId,
    service: DataService = Depends(get_data_service),
):
    service.save_drawing(customer_id, payload.drawing_data)
    return StatusResponse(status="ok")


@router.delete("/drawings/{customer_id}", status_code=204)
def delete_drawing(
    customer_id: DocumentId,
    service: DataService = Depends(get_data_service),
):
    service.delete_drawing(customer_id)
    return Response(status_code=204)


@router.get("/backup-history", response_model=BackupHistoryResponse)
def get_backup_history(
    limit: int | None = Query(None, ge=1, le=MAX_BACKUP_HISTORY_LIMIT),
    service: DataService = Depends(get_data_service),
):
    history = service.get_backup_history(limit or get_settings().backup_history_limit)
    return BackupHistoryResponse(history=to_json_compatible(history))


@router.post("/backup-history", response_model=CreatedResponse, status_code=201)
def save_backup_history(
    backup_info: dict[str, Any] = Body(...),
    service: DataService = Depends(get_data_service),
):
    return CreatedResponse(id=service.save_backup_history(backup_info))


@router.post("/bug-reports", response_model=CreatedResponse, status_code=201)
def save_bug_report(
    report: dict[str, Any] = Body(...),
    service: DataService = Depends(get_data_service),
):
    return CreatedResponse(id=service.save_bug_report(report))


@router.post("/customer-forms", response_model=CreatedResponse, status_code=201)
def save_customer_form(
    form: dict[str, Any] = Body(...),
    service: DataService = Depends(get_data_service),
):
    """Public intake form; works without an Authorization header."""
    return CreatedResponse(id=service.save_customer_form(form))
