"""Object storage backends for original chat images.

Both backends expose the same small async surface:

    await storage.put(key, body, content_type)

`S3ObjectStorage` writes to an S3 bucket through a boto3 client created once
per process. `LocalObjectStorage` writes the same key layout below a local
directory, which is handy for development without AWS credentials.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional, Protocol

import aiofiles
import boto3


class ObjectStorage(Protocol):
	"""Capability to persist bytes under a path-like key."""

	name: str

	async def put(self, key: str, body: bytes, content_type: str) -> None: ...


class S3ObjectStorage:
	"""Write objects to an S3 bucket.

	boto3 calls are blocking, so each `put_object` runs in a worker thread to
	keep the event loop free.
	"""

	name = "s3"

	def __init__(self, bucket: str, client: Any = None, region: Optional[str] = None) -> None:
		if not bucket:
			raise ValueError("An S3 bucket name is required.")
		self.bucket = bucket
		self.client = client or boto3.client("s3", region_name=region)

	async def put(self, key: str, body: bytes, content_type: str) -> None:
		"""Upload `body` to `s3://{bucket}/{key}` with the given content type."""
		await asyncio.to_thread(
			self.client.put_object,
			Bucket=self.bucket,
			Key=key,
			Body=body,
			ContentType=content_type,
		)


class LocalObjectStorage:
	"""Write objects as files under `base_dir`, one file per key."""

	name = "local"

	def __init__(self, base_dir: Path | str) -> None:
		self.base_dir = Path(base_dir).expanduser().resolve()

	def path_for(self, key: str) -> Path:
		"""Return the file path for `key`, refusing keys that escape `base_dir`."""
		target = (self.base_dir / key).resolve()
		if not target.is_relative_to(self.base_dir):
			raise ValueError(f"Object key escapes storage root: {key!r}")
		return target

	async def put(self, key: str, body: bytes, content_type: str) -> None:
		"""Write `body` to `<base_dir>/<key>`, creating parent folders as needed."""
		target = self.path_for(key)
		await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
		# Use aiofiles to write bytes asynchronously
		async with aiofiles.open(target, "wb") as f:
			await f.write(body)
