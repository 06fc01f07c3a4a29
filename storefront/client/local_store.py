# storefront/client/local_store.py
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_KEY = "session-id"


class LocalCartStore:
    """
    Small JSON file holding the client's session id and a mirror of each
    session's cart items. Best effort: never authoritative.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable local cart store {self.path}, starting empty: {e}")
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".cart-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp, self.path)

    def get_session_id(self) -> Optional[str]:
        return self._read().get(SESSION_KEY)

    def set_session_id(self, session_id: str) -> None:
        data = self._read()
        data[SESSION_KEY] = session_id
        self._write(data)

    def load_items(self, session_id: str) -> List[Dict[str, Any]]:
        entry = self._read().get("carts", {}).get(session_id) or {}
        return entry.get("items", [])

    def is_dirty(self, session_id: str) -> bool:
        entry = self._read().get("carts", {}).get(session_id) or {}
        return bool(entry.get("dirty"))

    def save_items(self, session_id: str, items: List[Dict[str, Any]], dirty: bool = False) -> None:
        data = self._read()
        data.setdefault("carts", {})[session_id] = {
            "items": items,
            "dirty": dirty,
            "savedAt": datetime.now(timezone.utc).isoformat(),
        }
        self._write(data)
