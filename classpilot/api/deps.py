from fastapi import Depends, HTTPException, Request
from classpilot.auth.sessions import AuthContext, SessionError, SessionStore
from classpilot.core.config import Settings
from classpilot.core.engine import WorkflowEngine


def get_engine(request: Request) -> WorkflowEngine:
    return request.app.state.engine


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_auth(request: Request, sessions: SessionStore = Depends(get_sessions)) -> AuthContext:
    header = request.headers.get("authorization", "")
    token = header[7:] if header.startswith("Bearer ") else None
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")
    try:
        return sessions.authenticate(token)
    except SessionError as e:
        raise HTTPException(status_code=401, detail=str(e))
