import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from firebase_admin import auth
from google.api_core import exceptions

from crine.app import create_app
from crine.auth import IdTokenAuthenticator
from crine.dependencies import get_authenticator, get_document_store
from crine.store import InMemoryDocumentStore

TOKENS = {
    "token-u1": {"uid": "u1", "email": "u1@example.com"},
    "token-u2": {"uid": "u2", "email": "u2@example.com"},
}


def _fake_verify(id_token, check_revoked=False):
    if id_token not in TOKENS:
        raise auth.InvalidIdTokenError("unknown token")
    return TOKENS[id_token]


def _auth(token="token-u1"):
    return {"Authorization": f"Bearer {token}"}


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.app = create_app()
        self.app.dependency_overrides[get_document_store] = lambda: self.store
        self.app.dependency_overrides[get_authenticator] = lambda: IdTokenAuthenticator(
            verify=_fake_verify
        )
        self.client = TestClient(self.app)

    def test_requests_without_token_are_rejected(self):
        response = self.client.get("/api/customers")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "UNAUTHENTICATED")

        response = self.client.post("/api/customers", json={"name": "A"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.store.documents, {})

    def test_invalid_token_is_rejected(self):
        response = self.client.get("/api/profile", headers=_auth("forged"))
        self.assertEqual(response.status_code, 401)

    def test_malformed_authorization_header_is_rejected(self):
        response = self.client.get(
            "/api/profile", headers={"Authorization": "Basic abc"}
        )
        self.assertEqual(response.status_code, 401)

    def test_profile_roundtrip(self):
        response = self.client.get("/api/profile", headers=_auth())
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["profile"])

        response = self.client.put(
            "/api/profile", json={"shopName": "Salon"}, headers=_auth()
        )
        self.assertEqual(response.json(), {"status": "ok"})

        profile = self.client.get("/api/profile", headers=_auth()).json()["profile"]
        self.assertEqual(profile["shopName"], "Salon")
        self.assertEqual(profile["email"], "u1@example.com")
        self.assertIsInstance(profile["updatedAt"], str)

    def test_customer_lifecycle(self):
        response = self.client.post(
            "/api/customers", json={"name": "A"}, headers=_auth()
        )
        self.assertEqual(response.status_code, 201)
        customer_id = response.json()["id"]

        response = self.client.patch(
            f"/api/customers/{customer_id}", json={"phone": "123"}, headers=_auth()
        )
        self.assertEqual(response.status_code, 200)

        customer = self.client.get(
            f"/api/customers/{customer_id}", headers=_auth()
        ).json()["customer"]
        self.assertEqual(customer["id"], customer_id)
        self.assertEqual(customer["phone"], "123")

        customers = self.client.get("/api/customers", headers=_auth()).json()
        self.assertEqual(len(customers["customers"]), 1)

        response = self.client.delete(f"/api/customers/{customer_id}", headers=_auth())
        self.assertEqual(response.status_code, 204)
        response = self.client.get(f"/api/customers/{customer_id}", headers=_auth())
        self.assertEqual(response.status_code, 404)

    def test_other_users_cannot_see_customers(self):
        customer_id = self.client.post(
            "/api/customers", json={"name": "A"}, headers=_auth("token-u1")
        ).json()["id"]
        response = self.client.get(
            f"/api/customers/{customer_id}", headers=_auth("token-u2")
        )
        self.assertEqual(response.status_code, 404)

    def test_update_missing_customer_is_404(self):
        response = self.client.patch(
            "/api/customers/missing", json={"phone": "1"}, headers=_auth()
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "NOT_FOUND")

    def test_profile_update_cannot_raise_own_quota(self):
        response = self.client.put(
            "/api/profile",
            json={"maxCustomers": 1000, "shopName": "Salon"},
            headers=_auth(),
        )
        self.assertEqual(response.status_code, 200)
        profile = self.store.get_document("users/u1")
        self.assertNotIn("maxCustomers", profile)
        self.assertEqual(profile["shopName"], "Salon")

        statuses = [
            self.client.post(
                "/api/customers", json={"name": f"c{i}"}, headers=_auth()
            ).status_code
            for i in range(15)
        ]

        self.assertEqual(statuses.count(201), 10)
        self.assertEqual(statuses[10:], [409] * 5)

    def test_profile_update_keeps_stored_quota(self):
        self.store.set_document("users/u1", {"maxCustomers": 3})
        self.client.put("/api/profile", json={"maxCustomers": 1000}, headers=_auth())
        self.assertEqual(self.store.get_document("users/u1")["maxCustomers"], 3)

    def test_quota_exceeded_is_409(self):
        self.store.set_document("users/u1", {"maxCustomers": 1})
        self.client.post("/api/customers", json={"name": "A"}, headers=_auth())

        response = self.client.post(
            "/api/customers", json={"name": "B"}, headers=_auth()
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "QUOTA_EXCEEDED")
        self.assertEqual(response.json()["limit"], 1)

    def test_drawing_roundtrip(self):
        payload = {"strokes": [[0, 0, 1, 1]]}
        response = self.client.put(
            "/api/drawings/c1", json={"drawing_data": payload}, headers=_auth()
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.get("/api/drawings/c1", headers=_auth())
        self.assertEqual(
            response.json(), {"customer_id": "c1", "drawing_data": payload}
        )

        self.client.delete("/api/drawings/c1", headers=_auth())
        response = self.client.get("/api/drawings/c1", headers=_auth())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"customer_id": "c1", "drawing_data": None})

    def test_saved_null_drawing_is_returned(self):
        response = self.client.put(
            "/api/drawings/c1", json={"drawing_data": None}, headers=_auth()
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(self.store.get_document("users/u1/drawings/c1"))

        response = self.client.get("/api/drawings/c1", headers=_auth())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"customer_id": "c1", "drawing_data": None})

    def test_backup_history(self):
        for i in range(3):
            response = self.client.post(
                "/api/backup-history", json={"fileName": f"b{i}"}, headers=_auth()
            )
            self.assertEqual(response.status_code, 201)

        history = self.client.get(
            "/api/backup-history", params={"limit": 2}, headers=_auth()
        ).json()["history"]
        self.assertEqual([entry["fileName"] for entry in history], ["b2", "b1"])

        response = self.client.get(
            "/api/backup-history", params={"limit": 0}, headers=_auth()
        )
        self.assertEqual(response.status_code, 422)

    def test_bug_report(self):
        response = self.client.post(
            "/api/bug-reports", json={"text": "Pen lags"}, headers=_auth()
        )
        self.assertEqual(response.status_code, 201)
        report_id = response.json()["id"]
        self.assertIsNotNone(
            self.store.get_document(f"users/u1/bugReports/{report_id}")
        )

    def test_customer_form_needs_no_token(self):
        response = self.client.post("/api/customer-forms", json={"name": "X"})
        self.assertEqual(response.status_code, 201)
        form_id = response.json()["id"]
        self.assertEqual(
            self.store.get_document(f"customerForms/{form_id}")["name"], "X"
        )

    def test_permission_denied_is_403(self):
        store = MagicMock()
        store.get_document.side_effect = exceptions.PermissionDenied("rules")
        self.app.dependency_overrides[get_document_store] = lambda: store

        response = self.client.get("/api/profile", headers=_auth())

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "PERMISSION_DENIED")


if __name__ == "__main__":
    unittest.main()
