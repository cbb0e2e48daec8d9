"""Tests for the auth blueprint."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from firebase_admin import auth

from santadraw import create_app
from santadraw.auth.identity import Identity, IdentityAdapter

CLAIMS = {
    "uid": "user1",
    "name": "Uma",
    "email": "uma@example.com",
    "picture": "http://u.png",
}


class AuthFirebaseTestCase(unittest.TestCase):
    """Test case for the auth blueprint."""

    def setUp(self) -> None:
        """Set up the test client."""
        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "verify_id_token": patch("santadraw.auth.identity.auth.verify_id_token"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SERVER_NAME": "localhost",
                "FIREBASE_API_KEY": "test-key",
                "FIREBASE_PROJECT_ID": "santa-test",
            }
        )
        self.client = self.app.test_client()

    def test_session_login(self) -> None:
        self.mocks["verify_id_token"].return_value = CLAIMS

        response = self.client.post("/auth/session_login", json={"idToken": "tok"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "success")
        self.mocks["verify_id_token"].assert_called_once_with("tok")
        with self.client.session_transaction() as sess:
            self.assertEqual(sess["user_id"], "user1")
            self.assertEqual(sess["identity"]["display_name"], "Uma")
            self.assertEqual(sess["identity"]["photo_url"], "http://u.png")

    def test_session_login_invalid_token(self) -> None:
        self.mocks["verify_id_token"].side_effect = auth.InvalidIdTokenError("bad")

        response = self.client.post("/auth/session_login", json={"idToken": "bad"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.get_json()["message"], "We could not sign you in. Please try again."
        )
        with self.client.session_transaction() as sess:
            self.assertNotIn("user_id", sess)

    def test_session_login_without_token(self) -> None:
        response = self.client.post("/auth/session_login", json={})

        self.assertEqual(response.status_code, 401)
        self.mocks["verify_id_token"].assert_not_called()

    def test_login_page_redirects_when_signed_in(self) -> None:
        with self.client.session_transaction() as sess:
            sess["user_id"] = "user1"
            sess["identity"] = Identity(uid="user1").to_session()

        response = self.client.get("/auth/login")

        self.assertEqual(response.status_code, 302)
        self.assertIn("/group/", response.headers["Location"])

    def test_login_page(self) -> None:
        response = self.client.get("/auth/login")
        self.assertEqual(response.status_code, 200)

    def test_logout(self) -> None:
        with self.client.session_transaction() as sess:
            sess["user_id"] = "user1"
            sess["identity"] = Identity(uid="user1").to_session()

        response = self.client.get("/auth/logout", follow_redirects=True)

        self.assertIn(b"You have been logged out.", response.data)
        with self.client.session_transaction() as sess:
            self.assertNotIn("identity", sess)

    def test_firebase_config(self) -> None:
        response = self.client.get("/auth/firebase-config.js")

        self.assertEqual(response.mimetype, "application/javascript")
        self.assertIn(b'"apiKey": "test-key"', response.data)
        self.assertIn(b'"projectId": "santa-test"', response.data)


class IdentityAdapterTestCase(unittest.TestCase):
    def test_identity_changes_are_reported(self) -> None:
        session: dict = {}
        adapter = IdentityAdapter(session, verify_id_token=lambda token: CLAIMS)
        callback = MagicMock()

        remove = adapter.on_identity_change(callback)
        adapter.sign_in("tok")
        adapter.sign_out()
        adapter.sign_out()
        remove()
        adapter.sign_in("tok")

        seen = [c.args[0] for c in callback.call_args_list]
        self.assertEqual(len(seen), 3)
        self.assertIsNone(seen[0])
        self.assertEqual(seen[1].uid, "user1")
        self.assertIsNone(seen[2])

    def test_label_fallbacks(self) -> None:
        self.assertEqual(Identity(uid="a", display_name="Ann").label, "Ann")
        self.assertEqual(Identity(uid="a", email="a@example.com").label, "a@example.com")
        self.assertEqual(Identity(uid="a", phone_number="+15550100").label, "+15550100")
        self.assertEqual(Identity(uid="a").label, "Anonymous gifter")


if __name__ == "__main__":
    unittest.main()
