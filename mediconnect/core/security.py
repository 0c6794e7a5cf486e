from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from enum import Enum
import logging

from .config import settings

logger = logging.getLogger(__name__)

# Password hashing. The cost factor is embedded in every digest, so raising
# BCRYPT_ROUNDS later only affects new hashes.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    PATIENT = "PATIENT"

class IdentityClaims(BaseModel):
    subject_id: int
    email: str
    role: UserRole
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash.

    Any failure inside the hashing backend counts as a mismatch.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Password verification failed: {e}")
        return False

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

# Token errors
class TokenError(Exception):
    """Base class for every reason a token is refused."""

class MalformedTokenError(TokenError):
    pass

class InvalidSignatureError(TokenError):
    pass

class TokenExpiredError(TokenError):
    pass

class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    There is a single verification path. When a cache is attached it only
    ever holds tokens that already passed full signature verification, keyed
    by a digest of the whole token, so a tampered token can never hit it.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(days=7),
        cache=None,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.expires_delta = expires_delta
        self.cache = cache

    def issue(self, claims: IdentityClaims) -> str:
        """Create a signed token for the given identity."""
        issued_at = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(claims.subject_id),
            "email": claims.email,
            "role": claims.role.value,
            "iat": issued_at,
            "exp": issued_at + self.expires_delta,
        }
        return jwt.encode(to_encode, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> IdentityClaims:
        """Verify a token and return its claims.

        Raises MalformedTokenError, InvalidSignatureError or TokenExpiredError.
        """
        if not token or token.count(".") != 2:
            raise MalformedTokenError("Token must have three segments")

        if self.cache is not None:
            payload = self.cache.get(token)
            if payload is not None:
                claims = self._claims_from_payload(payload)
                if claims.expires_at <= datetime.now(timezone.utc):
                    raise TokenExpiredError("Token has expired")
                return claims

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            # Tell an undecodable token apart from one with a bad signature
            try:
                jwt.get_unverified_claims(token)
            except JWTError:
                raise MalformedTokenError("Token could not be decoded") from e
            raise InvalidSignatureError("Token signature is invalid") from e

        claims = self._claims_from_payload(payload)

        if self.cache is not None:
            self.cache.put(token, payload, payload["exp"])

        return claims

    @staticmethod
    def _claims_from_payload(payload: dict) -> IdentityClaims:
        try:
            return IdentityClaims(
                subject_id=int(payload["sub"]),
                email=payload["email"],
                role=UserRole(payload["role"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise MalformedTokenError("Token payload is invalid") from e

# Role hierarchy, for minimum-role gating
ROLE_HIERARCHY = {
    UserRole.PATIENT: 1,
    UserRole.DOCTOR: 2,
    UserRole.ADMIN: 3,
}
