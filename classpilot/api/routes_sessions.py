import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from classpilot.auth.sessions import (
    AuthContext,
    SessionConflict,
    SessionStore,
    build_user_profile,
    normalize_username,
    resolve_client_id,
)
from classpilot.api.deps import get_sessions, get_settings, require_auth
from classpilot.core.config import Settings
from classpilot.schemas.sessions import (
    ClassroomResponse,
    LoginRequest,
    LoginResponse,
    SessionInfo,
    SessionResponse,
    UserProfile,
)

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(
    req: LoginRequest,
    request: Request,
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    username = normalize_username(req.username)
    expected = normalize_username(settings.username or "")
    if not expected or username != expected or req.password != settings.password:
        log.info("Failed login for %s", username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user_agent = request.headers.get("user-agent", "unknown")
    client_ip = request.client.host if request.client else None
    client_id = resolve_client_id(client_ip, user_agent, req.clientId)
    try:
        session = sessions.issue(username, client_id, user_agent)
    except SessionConflict as e:
        return JSONResponse(
            status_code=409,
            content={"detail": str(e), "activeClientId": e.active_client_id},
        )

    return LoginResponse(
        token=session.token,
        clientId=session.client_id,
        user=UserProfile(**build_user_profile(username)),
        expiresAt=session.expires_at,
    )


@router.post("/logout")
def logout(auth: AuthContext = Depends(require_auth), sessions: SessionStore = Depends(get_sessions)):
    sessions.revoke(auth.username)
    log.info("User %s logged out", auth.username)
    return {"message": "Logged out"}


@router.get("/session", response_model=SessionResponse)
def session(auth: AuthContext = Depends(require_auth), sessions: SessionStore = Depends(get_sessions)):
    record = sessions.get(auth.username)
    if record is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionResponse(
        user=UserProfile(**build_user_profile(auth.username)),
        session=SessionInfo(clientId=record.client_id, issuedAt=record.issued_at, expiresAt=record.expires_at),
    )


@router.get("/classroom", response_model=ClassroomResponse)
def classroom(auth: AuthContext = Depends(require_auth)):
    return ClassroomResponse(
        user=UserProfile(**build_user_profile(auth.username)),
        session=SessionInfo(clientId=auth.client_id, expiresAt=auth.token_expires_at),
    )
