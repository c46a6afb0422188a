from abc import ABC, abstractmethod
from pathlib import Path

from relaybot.schemas.content import FileInfo


class AbstractContentProvider(ABC):
	"""Interface for hosts that resolve share links and fetch their bytes."""

	@abstractmethod
	async def resolve_link(self, url: str) -> FileInfo:
		"""Resolve a share link into file/folder metadata.

		Args:
			url: Share link that already passed link-shape validation.

		Returns:
			FileInfo: Kind, name, size and media subtype.

		Raises:
			ContentProviderError: If the host cannot resolve the link.
		"""
		...

	@abstractmethod
	async def fetch_to_path(self, url: str, destination_dir: Path, *, info: FileInfo) -> Path:
		"""Download the link's content into ``destination_dir``.

		Folders are delivered as a single archive file.

		Args:
			url: Share link.
			destination_dir: Existing, job-private directory to write into.
			info: Metadata previously returned by ``resolve_link``.

		Returns:
			Path: Location of the fetched artifact inside ``destination_dir``.

		Raises:
			ContentProviderError: If the transfer fails.
		"""
		...
