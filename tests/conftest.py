"""Pytest configuration and fixtures for tests."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator, Optional
from contextlib import contextmanager

import onduty.models  # noqa: F401
from onduty.database import Base, get_db
from onduty.models.base import utcnow
from onduty.models.user import User, UserRole
from onduty.services.auth_service import AuthService


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a test database session for each test.
    Uses an in-memory SQLite database for fast testing.
    """
    # Create in-memory SQLite database for testing
    engine = create_engine("sqlite:///:memory:", echo=False)
    
    # Create all tables
    Base.metadata.create_all(bind=engine)
    
    # Create session
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()
    
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@contextmanager
def get_test_db_session():
    """
    Context manager for creating test database sessions.
    Used for property-based tests where fixtures don't work well.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()
    
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def api_session_factory():
    """
    Session factory over one shared in-memory database.
    StaticPool keeps the single connection alive across the app's threads.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    
    yield TestingSessionLocal
    
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def api_db(api_session_factory) -> Generator[Session, None, None]:
    """Session on the database the API client talks to."""
    db = api_session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(api_session_factory) -> Generator[TestClient, None, None]:
    """Create test client with the database dependency overridden."""
    from main import app
    
    def override_get_db():
        db = api_session_factory()
        try:
            yield db
        finally:
            db.close()
    
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(
    db: Session,
    role: UserRole,
    name: Optional[str] = None,
    user_id: Optional[str] = None,
    password: str = "secret"
) -> User:
    """Insert a user with the given role directly into the database."""
    user_id = user_id or f"{role.value}-{name or 'x'}".lower().replace(" ", "-")
    user = User(
        id=user_id,
        name=name or role.value.capitalize(),
        email=f"{user_id}@example.com",
        password_hash=AuthService.hash_password(password),
        role=role,
        created_at=utcnow()
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def people(test_db: Session) -> dict:
    """One user per role plus a second instructor and manager."""
    return {
        "student": make_user(test_db, UserRole.STUDENT, "Alex Johnson", "student-1"),
        "other_student": make_user(test_db, UserRole.STUDENT, "Sam Lee", "student-2"),
        "instructor": make_user(test_db, UserRole.INSTRUCTOR, "Sarah Chen", "instructor-1"),
        "other_instructor": make_user(test_db, UserRole.INSTRUCTOR, "Tom Diaz", "instructor-2"),
        "manager": make_user(test_db, UserRole.MANAGER, "Priya Singh", "manager-1"),
        "other_manager": make_user(test_db, UserRole.MANAGER, "Omar Aziz", "manager-2"),
        "admin": make_user(test_db, UserRole.ADMIN, "Admin User", "admin-1"),
    }
