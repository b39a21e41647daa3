# Overview: Service-layer operations for staff credentials; password hashing and login.

"""
Credential Store

Staff accounts (company owners and store managers) authenticate with email
and password. Passwords are hashed with bcrypt. Managers are created by an
owner together with their store and receive a generated temporary password
plus the forced-reset flag.

Bearer tokens are issued separately (see token_service.py).
"""

import secrets

import bcrypt

from ..extensions import db
from ..errors import ValidationError, ConflictError, NotFound, Unauthorized
from ..models import User, UserRole, Store
from ..time_utils import utcnow

MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str | None) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def generate_temp_password() -> str:
    """8 hex characters, handed to the owner once."""
    return secrets.token_hex(4)


def normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


def create_user(
    email: str,
    password: str,
    role: UserRole,
    *,
    store_id: int | None = None,
    must_reset_password: bool = False,
    commit: bool = True,
) -> User:
    """
    Create a staff account.

    Managers must reference an existing store; owners must not.

    Raises:
        ValidationError: bad email, weak password or role/store mismatch
        ConflictError: email already registered
    """
    email = normalize_email(email)

    if role is UserRole.MANAGER and store_id is None:
        raise ValidationError("Store managers must belong to a store")
    if role is UserRole.OWNER and store_id is not None:
        raise ValidationError("Company owners are not bound to a store")

    if get_user_by_email(email):
        raise ConflictError("Email already registered")

    if store_id is not None and db.session.get(Store, store_id) is None:
        raise NotFound("Store not found")

    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role,
        store_id=store_id,
        must_reset_password=must_reset_password,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate a staff member by email and password.

    Returns User if credentials are valid and the account is active, None
    otherwise. Updates last_login_at on success.
    """
    if not email or not password:
        return None

    user = get_user_by_email(email)
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def reset_password(user_id: int, current_password: str, new_password: str) -> User:
    """Change a user's own password and clear the forced-reset flag."""
    user = get_user(user_id)
    if not user:
        raise NotFound("User not found")

    if not verify_password(current_password or "", user.password_hash):
        raise Unauthorized("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    user.must_reset_password = False
    db.session.commit()
    return user


def issue_temporary_password(user: User) -> str:
    """Replace a user's password with a generated one and force a reset."""
    temp_password = generate_temp_password()
    user.password_hash = hash_password(temp_password)
    user.must_reset_password = True
    db.session.commit()
    return temp_password
