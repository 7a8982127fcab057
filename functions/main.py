# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# Cloud functions for the Crine backend: callable wrappers over the data
# access facade.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
from contextlib import contextmanager
from typing import Any, Optional

# Third-party library imports
from firebase_admin import initialize_app
from firebase_functions import https_fn, logger, options
from google.api_core import exceptions

# Local application imports
from crine.config import get_settings
from crine.dependencies import get_document_store
from crine.errors import QuotaExceededError, UnauthenticatedError
from crine.service import DataService, client_profile_fields
from crine.session import SessionContext
from shared.constants import MAX_BACKUP_HISTORY_LIMIT, MAX_DOCUMENT_ID_LENGTH
from shared.json_utils import to_json_compatible
from shared.types import Principal

initialize_app()

CALLABLE_MEMORY = options.MemoryOption.MB_256


def _session_from_auth(auth: Optional[https_fn.AuthData]) -> SessionContext:
    """Builds a session from the auth context Firebase verified for the call."""
    session = SessionContext()
    if auth is not None:
        session.set_principal(Principal.from_claims({**auth.token, "uid": auth.uid}))
    return session


def _data_service(req: https_fn.CallableRequest) -> DataService:
    return DataService(
        get_document_store(),
        _session_from_auth(req.auth),
        default_max_customers=get_settings().default_max_customers,
    )


def _invalid_argument(message: str) -> https_fn.HttpsError:
    return https_fn.HttpsError(https_fn.FunctionsErrorCode.INVALID_ARGUMENT, message)


def _document_id(req: https_fn.CallableRequest, key: str = "customer_id") -> str:
    value = req.data.get(key)
    if not isinstance(value, str) or not value:
        raise _invalid_argument(f"Must specify {key} parameter.")
    if len(value) > MAX_DOCUMENT_ID_LENGTH or "/" in value:
        raise _invalid_argument(f"Invalid {key}.")
    return value


def _fields(req: https_fn.CallableRequest) -> dict:
    fields = req.data.get("fields")
    if not isinstance(fields, dict):
        raise _invalid_argument("fields must be an object.")
    return fields


@contextmanager
def _translate_errors():
    """Maps facade and Firestore errors onto callable error codes."""
    try:
        yield
    except UnauthenticatedError as e:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.UNAUTHENTICATED, str(e))
    except QuotaExceededError as e:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.RESOURCE_EXHAUSTED,
            str(e),
            details={"limit": e.limit},
        )
    except exceptions.NotFound as e:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.NOT_FOUND, e.message)
    except exceptions.PermissionDenied as e:
        logger.error(f"Firestore permission denied: {e}")
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.PERMISSION_DENIED, e.message
        )


def _ok() -> dict:
    return {"status": "success"}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def get_user_profile(req: https_fn.CallableRequest) -> dict:
    with _translate_errors():
        profile = _data_service(req).get_user_profile()
    return {"profile": to_json_compatible(profile)}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def set_user_profile(req: https_fn.CallableRequest) -> dict:
    """
    Merge-writes the caller's profile. Server-owned fields such as
    maxCustomers are ignored.

    Args:
        req (https_fn.CallableRequest): The request, containing `fields`.
    """
    fields = client_profile_fields(_fields(req))
    with _translate_errors():
        _data_service(req).set_user_profile(fields)
    return _ok()


@https_fn.on_call(memory=CALLABLE_MEMORY)
def add_customer(req: https_fn.CallableRequest) -> dict:
    """
    Creates a customer, subject to the caller's maxCustomers quota.

    Args:
        req (https_fn.CallableRequest): The request, containing `fields`.

    Returns:
        A dictionary with the generated customer `id`.
    """
    fields = _fields(req)
    with _translate_errors():
        customer_id = _data_service(req).add_customer(fields)
    return {"id": customer_id}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def update_customer(req: https_fn.CallableRequest) -> dict:
    customer_id = _document_id(req)
    fields = _fields(req)
    with _translate_errors():
        _data_service(req).update_customer(customer_id, fields)
    return _ok()


@https_fn.on_call(memory=CALLABLE_MEMORY)
def delete_customer(req: https_fn.CallableRequest) -> dict:
    customer_id = _document_id(req)
    with _translate_errors():
        _data_service(req).delete_customer(customer_id)
    return _ok()


@https_fn.on_call(memory=CALLABLE_MEMORY)
def get_customers(req: https_fn.CallableRequest) -> dict:
    with _translate_errors():
        customers = _data_service(req).get_customers()
    return {"customers": to_json_compatible(customers)}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def get_customer(req: https_fn.CallableRequest) -> dict:
    customer_id = _document_id(req)
    with _translate_errors():
        customer = _data_service(req).get_customer(customer_id)
    return {"customer": to_json_compatible(customer)}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def save_drawing(req: https_fn.CallableRequest) -> dict:
    """
    Overwrites the drawing stored for a customer.

    Args:
        req (https_fn.CallableRequest): The request, containing `customer_id`
            and the opaque `drawing_data` payload.
    """
    customer_id = _document_id(req)
    if "drawing_data" not in req.data:
        raise _invalid_argument("Must specify drawing_data parameter.")
    with _translate_errors():
        _data_service(req).save_drawing(customer_id, req.data["drawing_data"])
    return _ok()


@https_fn.on_call(memory=CALLABLE_MEMORY)
def get_drawing(req: https_fn.CallableRequest) -> dict:
    customer_id = _document_id(req)
    with _translate_errors():
        drawing_data = _data_service(req).get_drawing(customer_id)
    return {"drawing_data": to_json_compatible(drawing_data)}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def delete_drawing(req: https_fn.CallableRequest) -> dict:
    customer_id = _document_id(req)
    with _translate_errors():
        _data_service(req).delete_drawing(customer_id)
    return _ok()


@https_fn.on_call(memory=CALLABLE_MEMORY)
def save_backup_history(req: https_fn.CallableRequest) -> dict:
    fields = _fields(req)
    with _translate_errors():
        entry_id = _data_service(req).save_backup_history(fields)
    return {"id": entry_id}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def get_backup_history(req: https_fn.CallableRequest) -> dict:
    """
    Returns the caller's most recent backup entries.

    Args:
        req (https_fn.CallableRequest): The request, optionally containing `limit`.
    """
    limit: Any = req.data.get("limit", get_settings().backup_history_limit)
    if (
        isinstance(limit, bool)
        or not isinstance(limit, int)
        or not 1 <= limit <= MAX_BACKUP_HISTORY_LIMIT
    ):
        raise _invalid_argument(
            f"limit must be an integer between 1 and {MAX_BACKUP_HISTORY_LIMIT}."
        )
    with _translate_errors():
        history = _data_service(req).get_backup_history(limit)
    return {"history": to_json_compatible(history)}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def save_bug_report(req: https_fn.CallableRequest) -> dict:
    fields = _fields(req)
    with _translate_errors():
        report_id = _data_service(req).save_bug_report(fields)
    return {"id": report_id}


@https_fn.on_call(memory=CALLABLE_MEMORY)
def save_customer_form(req: https_fn.CallableRequest) -> dict:
    """
    Stores a customer-filled intake form. Callable without signing in.

    Args:
        req (https_fn.CallableRequest): The request, containing the form `fields`.

    Returns:
        A dictionary with the generated form `id`.
    """
    fields = _fields(req)
    with _translate_errors():
        form_id = _data_service(req).save_customer_form(fields)
    return {"id": form_id}
