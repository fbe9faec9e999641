import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from passlib.context import CryptContext

from roomchat.config import settings
from roomchat.exceptions import AuthError, MalformedToken, SignatureInvalid, TokenExpired

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str


def generate_key_pair() -> Tuple[str, str]:
    """Return a fresh (private_pem, public_pem) RSA pair."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem

def public_key_from_private(private_pem: str) -> str:
    key = serialization.load_pem_private_key(private_pem.encode(), password=None)
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()

def _read_pem(value: str, path: str) -> str:
    if value:
        return value.replace("\\n", "\n")
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    return ""


class TokenService:
    """Issues and verifies RS256 identity tokens.

    Verification needs only the public key and never touches the database.
    There is no revocation: a token stays valid until its ``exp``.
    """

    def __init__(
        self,
        private_key: Optional[str],
        public_key: str,
        algorithm: str = "RS256",
        lifetime: timedelta = timedelta(minutes=60),
    ):
        self._private_key = private_key
        self._public_key = public_key
        self.algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, config=settings) -> "TokenService":
        private_key = _read_pem(config.JWT_PRIVATE_KEY, config.JWT_PRIVATE_KEY_FILE)
        public_key = _read_pem(config.JWT_PUBLIC_KEY, config.JWT_PUBLIC_KEY_FILE)

        if private_key and not public_key:
            public_key = public_key_from_private(private_key)
        elif not private_key and not public_key:
            logger.warning("No JWT key pair configured, generating an ephemeral one; tokens will not survive a restart")
            private_key, public_key = generate_key_pair()

        return cls(
            private_key,
            public_key,
            algorithm=config.ALGORITHM,
            lifetime=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    @property
    def expires_in(self) -> int:
        return int(self.lifetime.total_seconds())

    def issue(self, user_id: int, username: str, issued_at: Optional[datetime] = None) -> str:
        if not self._private_key:
            raise RuntimeError("TokenService has no private key and can only verify")

        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "username": username,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._private_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            jwt.get_unverified_header(token)
            claims = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedToken() from exc

        # Expiry wins over the signature check
        expires_at = claims.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise MalformedToken("Token has no expiry")
        if expires_at <= time.time():
            raise TokenExpired()

        try:
            payload = jwt.decode(token, self._public_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTClaimsError as exc:
            raise MalformedToken(str(exc)) from exc
        except JWTError as exc:
            raise SignatureInvalid() from exc

        try:
            return Identity(user_id=int(payload["sub"]), username=str(payload["username"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedToken("Token is missing identity claims") from exc


token_service = TokenService.from_settings(settings)

bearer_scheme = HTTPBearer(auto_error=False)

async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return token_service.verify(credentials.credentials)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
