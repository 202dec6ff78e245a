import unittest

from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from student_records.auth.auth_handler import get_password_hash
from student_records.configs.database import get_db, init_db
from student_records.main import app
from student_records.services import user_service


def make_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    return engine


def student_body(**overrides):
    body = {
        "studentNumber": "2025-0001",
        "firstName": "Maria",
        "lastName": "Santos",
        "email": "maria.santos@school.edu",
        "contactNumber": "0917 555 0101",
        "program": "BS Computer Science",
        "yearLevel": 2,
        "admissionDate": "2023-08-14",
        "status": "enrolled",
    }
    body.update(overrides)
    return body


class DatabaseTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()
        self.db = Session(self.engine)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()

        def override_get_db():
            with Session(self.engine) as session:
                yield session

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()

    def register(self, username, password="secret-pass", role="student", fullname=None):
        return self.client.post("/register", json={
            "fullname": fullname or username.title(),
            "username": username,
            "password": password,
            "roleni": role,
        })

    def create_account(self, username, password="secret-pass", role="student", fullname=None):
        """Store an account directly, bypassing the /register role checks."""
        with Session(self.engine) as session:
            return user_service.insert_manual(session, fullname or username.title(), username,
                                              get_password_hash(password), role).id

    def admin_headers(self, username="ada"):
        self.create_account(username, role="admin")
        return self.auth_headers(self.login_token(username))

    def login_token(self, username, password="secret-pass"):
        response = self.client.post("/login", json={"username": username, "password": password})
        return response.json()["access_token"]

    def auth_headers(self, token):
        return {"Authorization": f"Bearer {token}"}
