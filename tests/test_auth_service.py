"""Unit tests for account service."""
import pytest
from sqlalchemy.orm import Session

from onduty.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    MissingFieldError,
    NotFoundError,
    ValidationError,
)
from onduty.models.user import User, UserRole
from onduty.models.request import RequestStatus
from onduty.seed import DEFAULT_USERS, SAMPLE_REQUEST, seed_database
from onduty.services.auth_service import AuthService
from onduty.services.request_service import RequestService


class TestPasswordHashing:
    """Test cases for credential hashing."""
    
    def test_hash_is_salted(self):
        first = AuthService.hash_password("secret")
        second = AuthService.hash_password("secret")
        
        assert first != second
        assert "$" in first
        assert "secret" not in first
    
    def test_verify_password(self):
        hashed = AuthService.hash_password("secret")
        
        assert AuthService.verify_password("secret", hashed)
        assert not AuthService.verify_password("wrong", hashed)
        assert not AuthService.verify_password("secret", "not-a-hash")
        assert not AuthService.verify_password("", hashed)
    
    def test_empty_password_cannot_be_hashed(self):
        with pytest.raises(ValueError, match="Password is required"):
            AuthService.hash_password("")


class TestRegistration:
    """Test cases for user registration."""
    
    def test_register_user_creates_user(self, test_db: Session):
        auth_service = AuthService(test_db)
        user = auth_service.register_user("New Student", "new@example.com", "pw")
        
        assert user.id is not None
        assert user.role == UserRole.STUDENT
        assert user.password_hash != "pw"
        
        db_user = test_db.query(User).filter(User.email == "new@example.com").first()
        assert db_user is not None
        assert db_user.id == user.id
    
    def test_register_keeps_client_id(self, test_db: Session):
        auth_service = AuthService(test_db)
        user = auth_service.register_user(
            "Sarah Chen", "sarah@example.com", "pw",
            role=UserRole.INSTRUCTOR, user_id="u_0123456789ab"
        )
        
        assert user.id == "u_0123456789ab"
        assert user.role == UserRole.INSTRUCTOR
    
    def test_duplicate_email_rejected(self, test_db: Session):
        auth_service = AuthService(test_db)
        auth_service.register_user("First", "same@example.com", "pw")
        
        with pytest.raises(DuplicateEmailError) as exc_info:
            auth_service.register_user("Second", "same@example.com", "pw")
        
        assert exc_info.value.message == "Email already used"
        assert len(auth_service.list_users()) == 1
    
    def test_duplicate_id_rejected(self, test_db: Session):
        auth_service = AuthService(test_db)
        auth_service.register_user("First", "first@example.com", "pw", user_id="u1")
        
        with pytest.raises(ValidationError) as exc_info:
            auth_service.register_user("Second", "second@example.com", "pw", user_id="u1")
        
        assert exc_info.value.error_code == "DUPLICATE_ID"
    
    @pytest.mark.parametrize("name,email,password,field", [
        ("", "a@example.com", "pw", "name"),
        ("Name", "", "pw", "email"),
        ("Name", "a@example.com", "", "password"),
    ])
    def test_missing_fields(self, test_db: Session, name, email, password, field):
        auth_service = AuthService(test_db)
        
        with pytest.raises(MissingFieldError) as exc_info:
            auth_service.register_user(name, email, password)
        
        assert exc_info.value.details["field_name"] == field


class TestAuthentication:
    
    def test_authenticate_success(self, test_db: Session):
        auth_service = AuthService(test_db)
        created = auth_service.register_user("Alex", "alex@example.com", "student")
        
        user = auth_service.authenticate("alex@example.com", "student")
        
        assert user.id == created.id
    
    @pytest.mark.parametrize("email,password", [
        ("alex@example.com", "wrong"),
        ("nobody@example.com", "student"),
    ])
    def test_authenticate_failure(self, test_db: Session, email, password):
        auth_service = AuthService(test_db)
        auth_service.register_user("Alex", "alex@example.com", "student")
        
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.authenticate(email, password)
        
        assert exc_info.value.message == "Invalid email or password"


class TestUserManagement:
    
    def test_list_users_by_role(self, test_db: Session, people):
        auth_service = AuthService(test_db)
        
        managers = auth_service.list_users(role=UserRole.MANAGER)
        
        assert {u.id for u in managers} == {"manager-1", "manager-2"}
        assert len(auth_service.list_users()) == len(people)
    
    def test_update_user_profile(self, test_db: Session):
        auth_service = AuthService(test_db)
        user = auth_service.register_user("Alex", "alex@example.com", "old")
        
        updated = auth_service.update_user(user.id, name="Alex J", password="new")
        
        assert updated.name == "Alex J"
        assert updated.role == UserRole.STUDENT
        assert auth_service.authenticate("alex@example.com", "new").id == user.id
    
    def test_update_to_taken_email_rejected(self, test_db: Session):
        auth_service = AuthService(test_db)
        auth_service.register_user("First", "first@example.com", "pw")
        second = auth_service.register_user("Second", "second@example.com", "pw")
        
        with pytest.raises(DuplicateEmailError):
            auth_service.update_user(second.id, email="first@example.com")
    
    def test_delete_user(self, test_db: Session):
        auth_service = AuthService(test_db)
        user = auth_service.register_user("Gone", "gone@example.com", "pw")
        
        auth_service.delete_user(user.id)
        
        with pytest.raises(NotFoundError):
            auth_service.get_user(user.id)


class TestSeeding:
    
    def test_seed_database_is_idempotent(self, test_db: Session):
        assert seed_database(test_db) == len(DEFAULT_USERS)
        assert seed_database(test_db) == 0
        
        auth_service = AuthService(test_db)
        roles = {u.role for u in auth_service.list_users()}
        assert roles == set(UserRole)
        assert auth_service.authenticate("admin@company.local", "admin").id == "admin-1"
    
    def test_seed_database_adds_sample_request_once(self, test_db: Session):
        seed_database(test_db)
        seed_database(test_db)
        
        requests = RequestService(test_db).list_requests()
        assert [r.id for r in requests] == [SAMPLE_REQUEST["id"]]
        assert requests[0].status == RequestStatus.PENDING
        assert requests[0].instructor_id == "instructor-1"
        assert requests[0].user_id == "student-1"
