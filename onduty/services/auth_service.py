"""Account service: registration, login and credential hashing."""
from sqlalchemy.orm import Session
from typing import Optional, List
import hashlib
import logging
import secrets

from onduty.exceptions import InvalidCredentialsError, MissingFieldError
from onduty.models.user import User, UserRole
from onduty.services.entity_store import UserStore


logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100000


class AuthService:
    """Service for handling account operations."""

    def __init__(self, db: Session):
        """
        Initialize account service.

        Args:
            db: Database session
        """
        self.db = db
        self.users = UserStore(db)

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password using PBKDF2-HMAC-SHA256.

        Args:
            password: Plain text password

        Returns:
            Hashed password in format: salt$hash
        """
        if not password:
            raise ValueError("Password is required")

        # Generate a random salt
        salt = secrets.token_hex(32)

        pwd_hash = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            PBKDF2_ITERATIONS
        )

        return f"{salt}${pwd_hash.hex()}"

    @staticmethod
    def verify_password(password: str, hashed_password: str) -> bool:
        """
        Verify a password against a hashed password.

        Args:
            password: Plain text password to verify
            hashed_password: Hashed password in format: salt$hash

        Returns:
            True if password matches, False otherwise
        """
        if not password or not hashed_password:
            return False

        try:
            salt, stored_hash = hashed_password.split('$')

            pwd_hash = hashlib.pbkdf2_hmac(
                'sha256',
                password.encode('utf-8'),
                salt.encode('utf-8'),
                PBKDF2_ITERATIONS
            )

            return secrets.compare_digest(pwd_hash.hex(), stored_hash)
        except (ValueError, AttributeError):
            return False

    def register_user(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.STUDENT,
        user_id: Optional[str] = None
    ) -> User:
        """
        Register a new user.

        Args:
            name: Display name
            email: Login email, unique across users
            password: Plain text password (only its hash is stored)
            role: Role, fixed for the lifetime of the account
            user_id: Optional id chosen by the client

        Returns:
            Newly created User object

        Raises:
            MissingFieldError: If name, email or password is empty
            DuplicateEmailError: If the email is already used
        """
        if not name:
            raise MissingFieldError("name")
        if not email:
            raise MissingFieldError("email")
        if not password:
            raise MissingFieldError("password")

        user = self.users.create({
            "id": user_id,
            "name": name,
            "email": email,
            "password_hash": self.hash_password(password),
            "role": UserRole(role)
        })
        logger.info(f"Registered {user.role.value} {user.id} <{user.email}>")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Authenticate a user by email and password.

        Raises:
            InvalidCredentialsError: If no user matches
        """
        user = self.users.get_by_email(email)
        if user is None or not self.verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user

    def get_user(self, user_id: str) -> User:
        return self.users.get_by_id(user_id)

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        users = self.users.list()
        if role is not None:
            users = [u for u in users if u.role == role]
        return users

    def update_user(
        self,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None
    ) -> User:
        """Update profile fields. There is no way to change a role."""
        patch = {}
        if name:
            patch["name"] = name
        if email:
            patch["email"] = email
        if password:
            patch["password_hash"] = self.hash_password(password)
        return self.users.update(user_id, patch)

    def delete_user(self, user_id: str) -> None:
        self.users.delete(user_id)
