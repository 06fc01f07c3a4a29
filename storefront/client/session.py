# storefront/client/session.py
import secrets
import string
import time
from dataclasses import dataclass

from storefront.client.local_store import LocalCartStore

_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class SessionContext:
    """Identity of one shopper's cart, passed explicitly into every cart call."""

    session_id: str
    api_base: str

    @classmethod
    def load_or_create(cls, store: LocalCartStore, api_base: str) -> "SessionContext":
        session_id = store.get_session_id()
        if not session_id:
            session_id = generate_session_id()
            store.set_session_id(session_id)
        return cls(session_id=session_id, api_base=api_base.rstrip("/"))
