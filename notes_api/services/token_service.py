import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notes_api.config import Settings
from notes_api.models.refresh_token import RefreshToken
from notes_api.utils.clock import utcnow
from notes_api.utils.exceptions import InvalidTokenError, PersistenceError, TokenExpiredError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_BYTES = 32


class TokenService:
    """
    Issues and verifies bearer credentials.

    Access tokens are stateless JWTs: `{user_id, type, iat, exp}`, valid for a short
    window and never stored. Refresh tokens are opaque random strings persisted in
    `refresh_tokens` with an absolute expiry; presenting one yields a new access
    token while the refresh token itself stays unchanged until it expires or is revoked.

    The signing secret and the clock are injected so the service never reads
    global state and tests can move time.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_ttl: timedelta = timedelta(minutes=15),
        refresh_token_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret_key:
            raise ValueError("secret_key must be set")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], datetime] = utcnow) -> "TokenService":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            access_token_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_token_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            clock=clock,
        )

    @property
    def access_token_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_token_ttl.total_seconds())

    # ─── Access Tokens ────────────────────────────────────────────────────────
    def issue_access_token(self, user_id: int) -> str:
        now = self.clock()
        payload = {
            "user_id": user_id,
            "type":    ACCESS_TOKEN_TYPE,
            "iat":     int(now.timestamp()),
            "exp":     int((now + self.access_token_ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> int:
        """
        Return the user id asserted by a valid access token.
        Raises TokenExpiredError past `exp`, InvalidTokenError for anything else wrong.
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError()
        try:
            # Expiry is checked below against the injected clock
            payload = jwt.decode(
                token, self._secret_key, algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise InvalidTokenError()

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError()

        user_id = payload.get("user_id")
        exp = payload.get("exp")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise InvalidTokenError()
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise InvalidTokenError()

        # exp has whole-second precision, so compare at the same precision
        if int(self.clock().timestamp()) > exp:
            raise TokenExpiredError()
        return user_id

    # ─── Refresh Tokens ───────────────────────────────────────────────────────
    def issue_refresh_token(self, db: Session, user_id: int) -> tuple[str, datetime]:
        """
        Persist a new opaque refresh token for the user.
        Returns (token_string, expiry_datetime). A collision raises PersistenceError.
        """
        token = secrets.token_hex(REFRESH_TOKEN_BYTES)
        expires_at = self.clock() + self.refresh_token_ttl

        db.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Refresh token collision for user_id={user_id}")
            raise PersistenceError()
        return token, expires_at

    def rotate_refresh_token(self, db: Session, token: str) -> str:
        """
        Exchange a refresh token for a fresh access token.
        An expired refresh token is deleted before TokenExpiredError is raised.
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError()

        stored = db.query(RefreshToken).filter(RefreshToken.token == token).first()
        if not stored:
            raise InvalidTokenError()

        if stored.is_expired(self.clock()):
            self._delete(db, token)
            logger.info(f"Deleted expired refresh token for user_id={stored.user_id}")
            raise TokenExpiredError()

        return self.issue_access_token(stored.user_id)

    def revoke_refresh_token(self, db: Session, token: str) -> None:
        """Delete the refresh token if it exists. Revoking twice is not an error."""
        if not isinstance(token, str) or not token:
            return
        self._delete(db, token)

    def purge_expired_refresh_tokens(self, db: Session) -> int:
        """Delete every expired refresh token; returns how many were removed."""
        count = db.query(RefreshToken).filter(
            RefreshToken.expires_at <= self.clock(),
        ).delete(synchronize_session=False)
        db.commit()
        return count

    def _delete(self, db: Session, token: str) -> None:
        # Bulk delete matches zero rows instead of failing when another request got there first
        db.query(RefreshToken).filter(RefreshToken.token == token).delete(synchronize_session=False)
        db.commit()
