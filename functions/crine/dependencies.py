"""
Dependency wiring for the FastAPI app and the callable functions.
"""

from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from fastapi import Depends, Header
from firebase_admin import firestore

from crine.auth import IdTokenAuthenticator, bearer_token
from crine.config import Settings, get_settings
from crine.service import DataService
from crine.session import SessionContext
from crine.store import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)

_document_store: DocumentStore | None = None
_authenticator: IdTokenAuthenticator | None = None


def ensure_firebase_app(settings: Settings) -> firebase_admin.App:
    """Initializes the default Firebase app once, using application default credentials."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = (
            {"projectId": settings.firebase_project_id}
            if settings.firebase_project_id
            else None
        )
        logger.info("Initializing Firebase app (project=%s)", settings.firebase_project_id)
        return firebase_admin.initialize_app(options=options)


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory data persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        logger.info("Using in-memory document store")
        _document_store = InMemoryDocumentStore()
    else:
        ensure_firebase_app(settings)
        _document_store = FirestoreDocumentStore(client=firestore.client())
    return _document_store


def get_authenticator() -> IdTokenAuthenticator:
    global _authenticator
    if _authenticator:
        return _authenticator

    settings = get_settings()
    ensure_firebase_app(settings)
    _authenticator = IdTokenAuthenticator(check_revoked=settings.check_revoked_tokens)
    return _authenticator


def get_session(
    authorization: Optional[str] = Header(default=None),
    authenticator: IdTokenAuthenticator = Depends(get_authenticator),
) -> SessionContext:
    """
    Builds a request-scoped session.

    A request without an Authorization header gets an anonymous session; the
    facade decides whether the operation needs a principal.
    """
    session = SessionContext()
    token = bearer_token(authorization)
    if token:
        authenticator.sign_in(session, token)
    return session


def get_data_service(
    store: DocumentStore = Depends(get_document_store),
    session: SessionContext = Depends(get_session),
) -> DataService:
    return DataService(
        store,
        session,
        default_max_customers=get_settings().default_max_customers,
    )
