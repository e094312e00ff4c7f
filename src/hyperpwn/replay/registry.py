"""Session tag registry — which pane shows which debugger view."""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# A pane announces its view once, as the only content of a chunk
ANNOUNCEMENT_RE = re.compile(r" hyperpwn ([^\r\n]*)\r\n\r\n")


def match_announcement(text: str) -> str | None:
    """Return the announced view name if ``text`` is an announcement."""
    match = ANNOUNCEMENT_RE.fullmatch(text)
    return match.group(1) if match else None


class SessionRegistry:
    """Maps session IDs to the view names they announced.

    Iteration follows registration order, which is also the order in
    which sessions are tried when a context section is attributed.
    """

    def __init__(self) -> None:
        self._views: dict[str, str] = {}

    def register(self, session_id: str, text: str) -> str | None:
        """Register ``session_id`` if ``text`` is an announcement.

        Returns the view name on a match, ``None`` otherwise.
        """
        name = match_announcement(text)
        if name is None:
            return None
        if session_id in self._views and self._views[session_id] != name:
            logger.debug(
                "Session %s renamed its view: %s -> %s",
                session_id,
                self._views[session_id],
                name,
            )
        self._views[session_id] = name
        logger.info("Session %s shows view %r", session_id, name)
        return name

    def view_name(self, session_id: str) -> str | None:
        """Get the view name a session announced."""
        return self._views.get(session_id)

    def has_view(self, session_id: str) -> bool:
        return session_id in self._views

    def items(self) -> list[tuple[str, str]]:
        """(session_id, view_name) pairs in registration order."""
        return list(self._views.items())

    def session_ids(self) -> list[str]:
        return list(self._views.keys())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._views

    def __len__(self) -> int:
        return len(self._views)
