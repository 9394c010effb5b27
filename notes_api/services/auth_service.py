import logging

from sqlalchemy.orm import Session

from notes_api.models.user import User
from notes_api.schemas.auth import LoginRequest, SignupRequest
from notes_api.services.token_service import TokenService
from notes_api.utils.clock import as_utc
from notes_api.utils.security import verify_password, hash_password
from notes_api.utils.exceptions import InvalidCredentialsError, DuplicateEntryError

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict:
    return {
        "id":         user.id,
        "email":      user.email,
        "created_at": as_utc(user.created_at).isoformat() if user.created_at else None,
    }


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


class AuthService:

    # ─── Signup ───────────────────────────────────────────────────────────────
    def signup(self, db: Session, data: SignupRequest) -> User:
        if find_user_by_email(db, data.email):
            raise DuplicateEntryError("Email already registered", field="email")

        user = User(email=data.email, password_hash=hash_password(data.password))
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"User registered id={user.id}")
        return user

    # ─── Login ────────────────────────────────────────────────────────────────
    def login(self, db: Session, data: LoginRequest, tokens: TokenService) -> dict:
        user = find_user_by_email(db, data.email)

        if not user or not verify_password(data.password, user.password_hash):
            logger.info("Login failed: invalid credentials")
            raise InvalidCredentialsError()

        access_token = tokens.issue_access_token(user.id)
        refresh_token, _ = tokens.issue_refresh_token(db, user.id)
        logger.info(f"User id={user.id} logged in")

        return {
            "user":          serialize_user(user),
            "access_token":  access_token,
            "refresh_token": refresh_token,
            "token_type":    "Bearer",
            "expires_in":    tokens.access_token_expires_in,
        }

    # ─── Refresh Token ────────────────────────────────────────────────────────
    def refresh(self, db: Session, refresh_token: str, tokens: TokenService) -> dict:
        access_token = tokens.rotate_refresh_token(db, refresh_token)
        return {
            "access_token": access_token,
            "expires_in":   tokens.access_token_expires_in,
        }

    # ─── Logout ───────────────────────────────────────────────────────────────
    def logout(self, db: Session, refresh_token: str, tokens: TokenService) -> None:
        tokens.revoke_refresh_token(db, refresh_token)
        logger.info("Refresh token revoked")

    # ─── Seed ─────────────────────────────────────────────────────────────────
    def ensure_user(self, db: Session, email: str, password: str) -> tuple[User, bool]:
        """Create the user, or reset its password if it exists. Returns (user, created)."""
        user = find_user_by_email(db, email)
        created = user is None
        if created:
            user = User(email=email)
            db.add(user)
        user.password_hash = hash_password(password)
        db.commit()
        db.refresh(user)
        return user, created


auth_service = AuthService()
