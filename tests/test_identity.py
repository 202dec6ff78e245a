import asyncio
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
from sqlmodel import select

import sys
sys.path.append(str(Path(__file__).parent))

from helpers import DatabaseTestCase
from student_records.auth import google_auth_handler
from student_records.auth.auth_handler import authenticate_user, get_password_hash, verify_password
from student_records.configs import settings
from student_records.exceptions import (
    AuthRejectedError,
    FederatedLoginError,
    ForbiddenError,
    UsernameTakenError,
    ValidationError,
)
from student_records.models import User, UserRole
from student_records.models.user import LoginType
from student_records.schemas.user_schema import RegisterRequest, SessionUser
from student_records.services import user_service

REAL_ASYNC_CLIENT = httpx.AsyncClient

ADMIN_SESSION = SessionUser(id=1, sub="ada", fullname="Ada Admin", role=UserRole.admin)


def mock_google(handler):
    """Patch httpx so the tokeninfo call is answered by ``handler``."""
    def client_factory(**kwargs):
        return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler), **kwargs)
    return patch.object(google_auth_handler.httpx, "AsyncClient", side_effect=client_factory)


class TestRegistration(DatabaseTestCase):

    def register(self, username="registrar1", password="s3cret", role=None, fullname="Rita Registrar", requested_by=None):
        return user_service.register_user(
            RegisterRequest(fullname=fullname, username=username, password=password, roleni=role), self.db,
            requested_by=requested_by)

    def test_password_is_stored_hashed(self):
        user = self.register()
        self.assertNotEqual(user.password, "s3cret")
        self.assertTrue(verify_password("s3cret", user.password))
        self.assertEqual(user.login_type, LoginType.userpass)

    def test_role_is_whitelisted(self):
        cases = [("Registrar", UserRole.registrar), ("admin", UserRole.admin),
                 ("superuser", UserRole.student), (None, UserRole.student), ("", UserRole.student)]
        for index, (requested, expected) in enumerate(cases):
            with self.subTest(role=requested):
                user = self.register(username=f"user{index}", role=requested, requested_by=ADMIN_SESSION)
                self.assertEqual(user.role, expected)

    def test_staff_roles_need_an_admin_session(self):
        registrar = SessionUser(id=2, sub="rita", fullname="Rita Registrar", role=UserRole.registrar)
        for requested_by in (None, registrar):
            with self.subTest(requested_by=requested_by):
                with self.assertRaises(ForbiddenError):
                    self.register(role="admin", requested_by=requested_by)
        self.assertEqual(self.db.exec(select(User)).all(), [])
        self.assertEqual(self.register(role="superuser").role, UserRole.student)

    def test_username_taken(self):
        self.register()
        with self.assertRaises(UsernameTakenError):
            self.register(fullname="Someone Else")
        self.assertEqual(len(self.db.exec(select(User)).all()), 1)

    def test_missing_fields(self):
        for kwargs in ({"fullname": ""}, {"username": "  "}, {"password": ""}):
            with self.subTest(**kwargs):
                with self.assertRaises(ValidationError):
                    self.register(**kwargs)


class TestAccountInserts(DatabaseTestCase):

    def test_concurrent_username_claim_is_typed(self):
        # the second insert stands in for a request that passed the lookup before the first committed
        user_service.insert_manual(self.db, "Rita Registrar", "rita", get_password_hash("pw"))
        with self.assertRaises(UsernameTakenError):
            user_service.insert_manual(self.db, "Rita Again", "rita", get_password_hash("pw"))
        self.assertEqual(len(self.db.exec(select(User)).all()), 1)

    def test_concurrent_federated_provisioning_returns_existing_account(self):
        first = user_service.insert_federated(self.db, "Grace Guest", "grace@gmail.com", "google-sub-1")
        second = user_service.insert_federated(self.db, "Grace Guest", "grace@gmail.com", "google-sub-1")
        self.assertEqual(first.id, second.id)
        self.assertEqual(len(self.db.exec(select(User)).all()), 1)


class TestBootstrapAdmin(DatabaseTestCase):

    def configure(self, username="root", password="first-pass"):
        for name, value in (("INITIAL_ADMIN_USERNAME", username), ("INITIAL_ADMIN_PASSWORD", password)):
            patcher = patch.object(settings, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_creates_admin_once(self):
        self.configure()
        user = user_service.bootstrap_admin(self.db)
        self.assertEqual(user.role, UserRole.admin)
        self.assertTrue(verify_password("first-pass", user.password))
        self.assertIsNone(user_service.bootstrap_admin(self.db))
        self.assertEqual(len(self.db.exec(select(User)).all()), 1)

    def test_not_configured(self):
        self.configure(username="", password="")
        self.assertIsNone(user_service.bootstrap_admin(self.db))
        self.assertEqual(self.db.exec(select(User)).all(), [])

    def test_existing_username_is_not_promoted(self):
        self.configure(username="sam")
        user_service.insert_manual(self.db, "Sam Student", "sam", get_password_hash("pw"))
        self.assertIsNone(user_service.bootstrap_admin(self.db))
        self.assertEqual(user_service.find_by_username("sam", self.db).role, UserRole.student)


class TestManualLogin(DatabaseTestCase):

    def setUp(self):
        super().setUp()
        user_service.insert_manual(self.db, "Ada Admin", "ada", get_password_hash("correct horse"), "admin")

    def test_correct_credentials(self):
        identity = authenticate_user(self.db, "ada", "correct horse")
        self.assertEqual(identity.full_name, "Ada Admin")
        self.assertEqual(identity.role, UserRole.admin)
        self.assertEqual(identity.subject, "ada")

    def test_wrong_password_is_rejected(self):
        with self.assertRaises(AuthRejectedError):
            authenticate_user(self.db, "ada", "battery staple")

    def test_unknown_username_is_rejected(self):
        with self.assertRaises(AuthRejectedError):
            authenticate_user(self.db, "grace", "correct horse")

    def test_username_must_match_exactly(self):
        with self.assertRaises(AuthRejectedError):
            authenticate_user(self.db, "ADA", "correct horse")

    def test_missing_credentials(self):
        with self.assertRaises(ValidationError):
            authenticate_user(self.db, "ada", "")


class TestFederatedLogin(DatabaseTestCase):

    def accounts(self):
        return self.db.exec(select(User)).all()

    def test_first_login_provisions_one_student_account(self):
        identity = google_auth_handler.resolve_federated_identity(self.db, "google-sub-1", "Grace Guest", "grace@gmail.com")
        self.assertEqual(identity.role, UserRole.student)
        self.assertEqual(identity.full_name, "Grace Guest")

        accounts = self.accounts()
        self.assertEqual(len(accounts), 1)
        self.assertEqual(accounts[0].federated_id, "google-sub-1")
        self.assertIsNone(accounts[0].username)
        self.assertIsNone(accounts[0].password)
        self.assertEqual(accounts[0].login_type, LoginType.google)

    def test_returning_subject_keeps_stored_profile(self):
        google_auth_handler.resolve_federated_identity(self.db, "google-sub-1", "Grace Guest", "grace@gmail.com")
        account = self.accounts()[0]
        account.role = UserRole.registrar
        self.db.add(account)
        self.db.commit()

        identity = google_auth_handler.resolve_federated_identity(self.db, "google-sub-1", "Renamed", "grace@gmail.com")
        self.assertEqual(identity.role, UserRole.registrar)
        self.assertEqual(identity.full_name, "Grace Guest")
        self.assertEqual(len(self.accounts()), 1)

    def test_federated_account_cannot_use_manual_login(self):
        google_auth_handler.resolve_federated_identity(self.db, "google-sub-1", "Grace Guest", "grace@gmail.com")
        with self.assertRaises(AuthRejectedError):
            authenticate_user(self.db, "grace@gmail.com", "anything")

    def test_authenticate_google_user_uses_verified_claims(self):
        claims = {"sub": "google-sub-2", "email": "lin@gmail.com", "name": "Lin Guest"}
        with patch.object(google_auth_handler, "verify_google_token", AsyncMock(return_value=claims)) as verify:
            identity = asyncio.run(google_auth_handler.authenticate_google_user(self.db, "id-token"))
        verify.assert_awaited_once_with("id-token")
        self.assertEqual(identity.full_name, "Lin Guest")
        self.assertEqual(identity.federated_id, "google-sub-2")

    def test_account_lookup_runs_off_the_event_loop(self):
        claims = {"sub": "google-sub-3", "email": "kim@gmail.com", "name": "Kim Guest"}
        original = user_service.find_by_federated_id
        threads = []

        def record_thread(federated_id, db):
            try:
                asyncio.get_running_loop()
                threads.append("event loop")
            except RuntimeError:
                threads.append("worker")
            return original(federated_id, db)

        with patch.object(google_auth_handler, "verify_google_token", AsyncMock(return_value=claims)), \
                patch.object(google_auth_handler.user_service, "find_by_federated_id", side_effect=record_thread):
            identity = asyncio.run(google_auth_handler.authenticate_google_user(self.db, "id-token"))
        self.assertEqual(identity.federated_id, "google-sub-3")
        self.assertEqual(threads, ["worker"])

    def test_missing_token(self):
        with self.assertRaises(FederatedLoginError):
            asyncio.run(google_auth_handler.authenticate_google_user(self.db, None))


class TestVerifyGoogleToken(unittest.TestCase):

    def test_valid_token(self):
        def handler(request):
            self.assertEqual(request.url.params["id_token"], "good-token")
            return httpx.Response(200, json={"sub": "123", "aud": "client-1", "email": "x@gmail.com"})

        with mock_google(handler), patch.object(settings, "GOOGLE_CLIENT_ID", "client-1"):
            claims = asyncio.run(google_auth_handler.verify_google_token("good-token"))
        self.assertEqual(claims["sub"], "123")

    def test_rejected_token(self):
        with mock_google(lambda request: httpx.Response(400, json={"error": "invalid_token"})):
            with self.assertRaises(FederatedLoginError):
                asyncio.run(google_auth_handler.verify_google_token("bad-token"))

    def test_wrong_audience(self):
        def handler(request):
            return httpx.Response(200, json={"sub": "123", "aud": "someone-else"})

        with mock_google(handler), patch.object(settings, "GOOGLE_CLIENT_ID", "client-1"):
            with self.assertRaises(FederatedLoginError):
                asyncio.run(google_auth_handler.verify_google_token("token"))

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("network down", request=request)

        with mock_google(handler):
            with self.assertRaises(FederatedLoginError):
                asyncio.run(google_auth_handler.verify_google_token("token"))


if __name__ == "__main__":
    unittest.main()
