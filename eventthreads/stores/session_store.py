"""Opaque session tokens persisted as JSON"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from ..utils.timestamps import ensure_utc, utc_now
from .json_store import JsonDocumentStore


class SessionStore(JsonDocumentStore):
    """token -> {user_id, created_at, expires_at}"""

    filename = "sessions.json"

    def _empty(self):
        return {"sessions": {}}

    def create_session(self, user_id: str, lifetime: timedelta) -> str:
        """Create a new session and return its opaque token."""
        token = secrets.token_urlsafe(32)
        now = utc_now()
        with self.mutate() as doc:
            doc.setdefault("sessions", {})[token] = {
                "user_id": user_id,
                "created_at": now.isoformat(),
                "expires_at": (now + lifetime).isoformat(),
            }
        return token

    def resolve(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the session for token, dropping it if expired."""
        if not token:
            return None
        with self.mutate() as doc:
            sessions = doc.setdefault("sessions", {})
            session = sessions.get(token)
            if session is None:
                return None
            if utc_now() > ensure_utc(datetime.fromisoformat(session["expires_at"])):
                del sessions[token]
                return None
            return dict(session)

    def revoke(self, token: str) -> None:
        """Invalidate a session token (idempotent)."""
        if not token:
            return
        with self.mutate() as doc:
            doc.setdefault("sessions", {}).pop(token, None)

    def cleanup_expired(self) -> int:
        now = utc_now()
        with self.mutate() as doc:
            sessions = doc.setdefault("sessions", {})
            expired = [
                token for token, data in sessions.items()
                if now > ensure_utc(datetime.fromisoformat(data["expires_at"]))
            ]
            for token in expired:
                del sessions[token]
            return len(expired)
