"""Derive the conversation folder that groups a chat's stored images."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence
from uuid import uuid4

from models.session_models import SessionResolution

logger = logging.getLogger(__name__)

SESSION_MAX_AGE_SECONDS = 90 * 24 * 60 * 60


def _clean(value: Any) -> Optional[str]:
	if value is None:
		return None
	text = str(value).strip()
	return text or None


class SessionAddressor:
	"""Resolve a stable session id for a request.

	Resolution order, first non-empty value wins:
	  1. `chatId` / `chat_id` in the request's `data` object
	  2. the id of the first message in the conversation
	  3. the session cookie issued on an earlier request
	  4. a freshly minted `YYYYMMDD-<token>` id, returned for persisting
	"""

	def __init__(self, clock: Optional[Callable[[], datetime]] = None, token_length: int = 8) -> None:
		self._clock = clock or (lambda: datetime.now(timezone.utc))
		self.token_length = token_length

	def resolve(
		self,
		data: Optional[Mapping[str, Any]],
		messages: Optional[Sequence[Mapping[str, Any]]],
		cookie_token: Optional[str],
	) -> SessionResolution:
		"""Return the session id for this request and whether it was minted."""
		data = data or {}
		for field in ("chatId", "chat_id"):
			explicit = _clean(data.get(field))
			if explicit:
				return SessionResolution(session_id=explicit, source=field)

		if messages:
			first_id = _clean((messages[0] or {}).get("id"))
			if first_id:
				return SessionResolution(session_id=first_id, source="message")

		persisted = _clean(cookie_token)
		if persisted:
			return SessionResolution(session_id=persisted, source="cookie")

		session_id = self.mint()
		logger.info("Minted new session id %s", session_id)
		return SessionResolution(session_id=session_id, source="minted", minted=True)

	def mint(self) -> str:
		"""Return a new id: UTC date stamp plus a short random hex token."""
		stamp = self._clock().strftime("%Y%m%d")
		return f"{stamp}-{uuid4().hex[: self.token_length]}"
