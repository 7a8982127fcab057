"""
Data-access facade over the document store.

One method per domain operation. Every method except save_customer_form
requires a signed-in principal and scopes its path under ``users/{uid}``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from crine.errors import QuotaExceededError, UnauthenticatedError
from crine.session import SessionContext
from crine.store import DocumentStore
from shared.constants import DEFAULT_BACKUP_HISTORY_LIMIT, DEFAULT_MAX_CUSTOMERS
from shared.firebase_constants import (
    BACKUP_HISTORY_COLLECTION,
    BUG_REPORTS_COLLECTION,
    CREATED_AT_FIELD,
    CUSTOMER_FORMS_COLLECTION,
    CUSTOMER_ID_FIELD,
    CUSTOMERS_COLLECTION,
    DRAWING_DATA_FIELD,
    DRAWINGS_COLLECTION,
    EMAIL_FIELD,
    MAX_CUSTOMERS_FIELD,
    PROTECTED_PROFILE_FIELDS,
    UPDATED_AT_FIELD,
    USERS_COLLECTION,
)
from shared.types import Principal

logger = logging.getLogger(__name__)


def client_profile_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drops server-owned fields (quota, email, timestamps) from a client profile write.

    Writes through the Admin SDK bypass security rules, so a caller must not be
    able to raise their own maxCustomers.
    """
    dropped = sorted(PROTECTED_PROFILE_FIELDS.intersection(fields))
    if dropped:
        logger.warning("Ignoring protected profile fields: %s", ", ".join(dropped))
    return {
        key: value
        for key, value in fields.items()
        if key not in PROTECTED_PROFILE_FIELDS
    }


class DataService:
    def __init__(
        self,
        store: DocumentStore,
        session: SessionContext,
        *,
        default_max_customers: int = DEFAULT_MAX_CUSTOMERS,
    ):
        self.store = store
        self.session = session
        self.default_max_customers = default_max_customers

    def current_principal(self) -> Optional[Principal]:
        return self.session.current_principal()

    def is_authenticated(self) -> bool:
        return self.session.is_authenticated()

    def _require_principal(self) -> Principal:
        principal = self.session.current_principal()
        if principal is None:
            raise UnauthenticatedError()
        return principal

    def _user_path(self, *segments: str) -> str:
        principal = self._require_principal()
        return "/".join((USERS_COLLECTION, principal.uid) + segments)

    # User profile

    def get_user_profile(self) -> Optional[Dict[str, Any]]:
        """Returns the stored profile fields, or None if no profile exists."""
        return self.store.get_document(self._user_path())

    def set_user_profile(self, fields: Dict[str, Any]) -> None:
        """
        Merge-writes profile fields.

        The email always comes from the signed-in principal, not from `fields`.
        """
        principal = self._require_principal()
        self.store.set_document(
            self._user_path(),
            {
                **fields,
                EMAIL_FIELD: principal.email,
                UPDATED_AT_FIELD: SERVER_TIMESTAMP,
            },
            merge=True,
        )
        logger.info("User profile updated")

    # Customers

    def add_customer(self, fields: Dict[str, Any]) -> str:
        """
        Creates a customer and returns its generated id.

        The quota check reads the profile and the full customer list before
        writing. It is not transactional: concurrent calls for the same user
        can both pass the check.

        Raises:
            QuotaExceededError: if the user already has maxCustomers customers.
        """
        profile = self.get_user_profile()
        customers = self.get_customers()

        limit = self._customer_limit(profile)

        if len(customers) >= limit:
            logger.warning(
                "Customer quota reached: %d of %d", len(customers), limit
            )
            raise QuotaExceededError(limit)

        customer_id = self.store.add_document(
            self._user_path(CUSTOMERS_COLLECTION),
            {
                **fields,
                CREATED_AT_FIELD: SERVER_TIMESTAMP,
                UPDATED_AT_FIELD: SERVER_TIMESTAMP,
            },
        )
        logger.info(f"Customer added: {customer_id}")
        return customer_id

    def _customer_limit(self, profile: Optional[Dict[str, Any]]) -> int:
        """Reads maxCustomers, falling back to the default when absent or unparseable."""
        value = profile.get(MAX_CUSTOMERS_FIELD) if profile else None
        if value is None:
            return self.default_max_customers
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Unparseable maxCustomers value: %r", value)
            return self.default_max_customers

    def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> None:
        """
        Updates the given fields of an existing customer.

        Raises:
            google.api_core.exceptions.NotFound: if the customer does not exist.
        """
        self.store.update_document(
            self._user_path(CUSTOMERS_COLLECTION, customer_id),
            {**fields, UPDATED_AT_FIELD: SERVER_TIMESTAMP},
        )
        logger.info(f"Customer updated: {customer_id}")

    def delete_customer(self, customer_id: str) -> None:
        self.store.delete_document(self._user_path(CUSTOMERS_COLLECTION, customer_id))
        logger.info(f"Customer deleted: {customer_id}")

    def get_customers(self) -> List[Dict[str, Any]]:
        """Returns all customers, newest first."""
        documents = self.store.list_documents(
            self._user_path(CUSTOMERS_COLLECTION),
            order_by=CREATED_AT_FIELD,
            descending=True,
        )
        customers = [{"id": doc_id, **data} for doc_id, data in documents]
        logger.info("Customers loaded: %d", len(customers))
        return customers

    def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        data = self.store.get_document(
            self._user_path(CUSTOMERS_COLLECTION, customer_id)
        )
        if data is None:
            return None
        return {"id": customer_id, **data}

    # Drawings (one per customer, keyed by customer id)

    def save_drawing(self, customer_id: str, drawing_data: Any) -> None:
        self.store.set_document(
            self._user_path(DRAWINGS_COLLECTION, customer_id),
            {
                CUSTOMER_ID_FIELD: customer_id,
                DRAWING_DATA_FIELD: drawing_data,
                UPDATED_AT_FIELD: SERVER_TIMESTAMP,
            },
        )
        logger.info(f"Drawing saved: {customer_id}")

    def get_drawing(self, customer_id: str) -> Optional[Any]:
        data = self.store.get_document(
            self._user_path(DRAWINGS_COLLECTION, customer_id)
        )
        if data is None:
            return None
        return data.get(DRAWING_DATA_FIELD)

    def delete_drawing(self, customer_id: str) -> None:
        self.store.delete_document(self._user_path(DRAWINGS_COLLECTION, customer_id))
        logger.info(f"Drawing deleted: {customer_id}")

    # Backup history

    def save_backup_history(self, backup_info: Dict[str, Any]) -> str:
        entry_id = self.store.add_document(
            self._user_path(BACKUP_HISTORY_COLLECTION),
            {**backup_info, CREATED_AT_FIELD: SERVER_TIMESTAMP},
        )
        logger.info("Backup history saved")
        return entry_id

    def get_backup_history(
        self, limit: int = DEFAULT_BACKUP_HISTORY_LIMIT
    ) -> List[Dict[str, Any]]:
        """Returns the `limit` most recent backup entries, newest first."""
        if limit < 1:
            raise ValueError("limit must be a positive integer.")
        documents = self.store.list_documents(
            self._user_path(BACKUP_HISTORY_COLLECTION),
            order_by=CREATED_AT_FIELD,
            descending=True,
            limit=limit,
        )
        return [{"id": doc_id, **data} for doc_id, data in documents]

    # Bug reports

    def save_bug_report(self, report: Dict[str, Any]) -> str:
        report_id = self.store.add_document(
            self._user_path(BUG_REPORTS_COLLECTION),
            {**report, CREATED_AT_FIELD: SERVER_TIMESTAMP},
        )
        logger.info("Bug report saved")
        return report_id

    # Public customer intake form

    def save_customer_form(self, form: Dict[str, Any]) -> str:
        """Stores a customer-filled form. No sign-in required."""
        form_id = self.store.add_document(
            CUSTOMER_FORMS_COLLECTION,
            {**form, CREATED_AT_FIELD: SERVER_TIMESTAMP},
        )
        logger.info(f"Customer form saved: {form_id}")
        return form_id
