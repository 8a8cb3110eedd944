"""
Single-client login sessions backed by signed JWTs.

One active browser session is allowed per username; a login from another
client is rejected until the first one logs out or expires.
"""
from __future__ import annotations
import hashlib
import logging
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional
from jose import JWTError, jwt

log = logging.getLogger(__name__)

ALGORITHM = "HS256"


class SessionError(Exception):
    """Raised when a token cannot be matched to an active session."""


class SessionConflict(SessionError):
    def __init__(self, username: str, active_client_id: str):
        self.username = username
        self.active_client_id = active_client_id
        super().__init__("User already active in another browser session. Please logout first.")


@dataclass
class SessionRecord:
    session_id: str
    username: str
    client_id: str
    issued_at: datetime
    expires_at: datetime
    user_agent: str
    token: str


@dataclass
class AuthContext:
    username: str
    client_id: str
    session_id: str
    token_expires_at: datetime


def normalize_username(username: str) -> str:
    return username.strip().lower()


def build_user_profile(username: str) -> Dict[str, str]:
    cleaned = normalize_username(username)
    parts = [p for p in re.split(r"[^a-z0-9]+", cleaned) if p]
    initials = "".join(p[0] for p in parts)[:2].upper() or "US"
    return {"username": cleaned, "fullName": cleaned, "avatar": initials}


def resolve_client_id(ip: Optional[str], user_agent: Optional[str], provided: Optional[str] = None) -> str:
    if provided and provided.strip():
        return provided.strip()
    raw = f"{ip}-{user_agent or 'unknown'}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


class SessionStore:
    def __init__(self, secret: str, ttl_ms: int):
        self.secret = secret
        self.ttl_ms = ttl_ms
        self._sessions: Dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, username: str) -> Optional[SessionRecord]:
        return self._sessions.get(normalize_username(username))

    def issue(self, username: str, client_id: str, user_agent: str) -> SessionRecord:
        name = normalize_username(username)
        existing = self._sessions.get(name)
        if existing is not None and existing.client_id != client_id and not self._expired(existing):
            raise SessionConflict(name, existing.client_id)

        session_id = str(uuid.uuid4())
        issued_ms = int(time.time() * 1000)
        expires_ms = issued_ms + self.ttl_ms
        token = jwt.encode(
            {
                "sub": name,
                "clientId": client_id,
                "sessionId": session_id,
                "iat": issued_ms // 1000,
                "exp": expires_ms // 1000,
            },
            self.secret,
            algorithm=ALGORITHM,
        )
        record = SessionRecord(
            session_id=session_id,
            username=name,
            client_id=client_id,
            issued_at=datetime.fromtimestamp(issued_ms / 1000, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_ms / 1000, tz=timezone.utc),
            user_agent=user_agent,
            token=token,
        )
        self._sessions[name] = record
        log.info("Login success for %s (client %s)", name, client_id)
        return record

    def revoke(self, username: str) -> None:
        self._sessions.pop(normalize_username(username), None)

    def authenticate(self, token: str) -> AuthContext:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError as e:
            log.error("JWT verification failed: %s", e)
            raise SessionError("Invalid token") from e

        username = normalize_username(str(payload.get("sub") or ""))
        session = self._sessions.get(username)
        if session is None:
            raise SessionError("Session expired")
        if self._expired(session):
            self._sessions.pop(username, None)
            raise SessionError("Session expired")
        if session.session_id != payload.get("sessionId") or session.client_id != payload.get("clientId"):
            raise SessionError("Session no longer valid")

        return AuthContext(
            username=username,
            client_id=session.client_id,
            session_id=session.session_id,
            token_expires_at=session.expires_at,
        )

    @staticmethod
    def _expired(session: SessionRecord) -> bool:
        return datetime.now(timezone.utc) > session.expires_at
