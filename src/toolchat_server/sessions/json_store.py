"""File-backed session store.

Each conversation is persisted as one JSON file named after its id. Writes go
to a temporary file that is then renamed over the target, so a reader never
sees a user turn without its paired model turn.
"""

import json
import logging
import os
from pathlib import Path

from toolchat_server.sessions.conversation import Conversation
from toolchat_server.sessions.store import BusyPolicy, SessionStore

logger = logging.getLogger(__name__)


class JsonFileSessionStore(SessionStore):
    """Session store operating on a directory of JSON conversation files."""

    def __init__(self, sessions_dir: Path, busy_policy: BusyPolicy = "queue"):
        """Initialize the store.

        Args:
            sessions_dir: Directory where conversation JSON files are stored
            busy_policy: See SessionStore
        """
        super().__init__(busy_policy)
        self.sessions_dir = sessions_dir
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, conversation_id: str) -> Path:
        # Ids are generated hex strings; anything else cannot name a stored file
        if not conversation_id.isalnum():
            return self.sessions_dir / ".invalid"
        return self.sessions_dir / f"{conversation_id}.json"

    def _load(self, conversation_id: str) -> Conversation | None:
        file_path = self._path(conversation_id)
        if not file_path.is_file():
            return None

        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Conversation.from_dict(data)

    def _save(self, conversation: Conversation) -> None:
        file_path = self._path(conversation.id)
        tmp_path = file_path.with_suffix(".json.tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(conversation.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, file_path)

        logger.debug(f"Saved conversation {conversation.id} to {file_path}")

    def _remove(self, conversation_id: str) -> bool:
        file_path = self._path(conversation_id)
        if not file_path.is_file():
            return False
        file_path.unlink()
        return True

    def _load_all(self) -> list[Conversation]:
        conversations: list[Conversation] = []
        for file_path in self.sessions_dir.glob("*.json"):
            try:
                conversation = self._load(file_path.stem)
            except Exception as e:
                logger.warning(f"Failed to load conversation {file_path.stem}: {e}")
                continue
            if conversation is not None:
                conversations.append(conversation)
        return conversations
