"""Session domain models for conversation addressing."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SessionResolution:
	"""Outcome of resolving which conversation folder a request belongs to."""

	session_id: str
	source: str
	minted: bool = False

	@property
	def token_to_persist(self) -> str | None:
		"""Return the token to hand back to the client, only when newly minted."""
		return self.session_id if self.minted else None
