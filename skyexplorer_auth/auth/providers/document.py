"""
Document-backed storage.

Keeps a whole collection in one file: every read parses the file fresh,
every write re-serializes the complete document. The markup format is a
pluggable DocumentSerializer; the locking discipline lives here:

- all writers for one file share a single lock
- readers never take the lock
- the rewrite goes to a temp file that is then os.replace()d over the
  original, so readers see either the old or the new document
"""

import contextlib
import logging
import os
import tempfile
import threading
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Union

from skyexplorer_auth.auth.errors import StorageError

logger = logging.getLogger(__name__)


# ========================================
# Serializers
# ========================================


class DocumentSerializer(ABC):
    """Converts between a document object and its on-disk bytes."""

    @abstractmethod
    def empty(self) -> Any:
        """Returns a new empty document."""

    @abstractmethod
    def parse(self, data: bytes) -> Any:
        """Parses file content. Raises on malformed input."""

    @abstractmethod
    def serialize(self, document: Any) -> bytes:
        """Renders a document to bytes."""


class XmlDocumentSerializer(DocumentSerializer):
    """
    ElementTree serializer for single-root XML documents.

    Args:
        root_tag: Tag name of the root element (e.g. "users")
    """

    def __init__(self, root_tag: str):
        self.root_tag = root_tag

    def empty(self) -> ET.Element:
        return ET.Element(self.root_tag)

    def parse(self, data: bytes) -> ET.Element:
        root = ET.fromstring(data)
        if root.tag != self.root_tag:
            raise ValueError(f"Expected root element <{self.root_tag}>, found <{root.tag}>")
        return root

    def serialize(self, document: ET.Element) -> bytes:
        ET.indent(document)
        return ET.tostring(document, encoding="utf-8", xml_declaration=True)


# ========================================
# Store
# ========================================

# One lock per file, shared across store instances
_file_locks: Dict[str, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.Lock()
        return lock


class DocumentStore:
    """
    A single document persisted in a single file.

    Args:
        path: File location
        serializer: Codec for the document format
    """

    def __init__(self, path: Union[str, Path], serializer: DocumentSerializer):
        self.path = Path(path)
        self.serializer = serializer
        self._lock = _lock_for(self.path)

    def ensure_exists(self) -> bool:
        """
        Creates the parent directory and an empty document if the file is missing.

        Returns:
            bool: True if the file was created
        """
        with self._lock:
            if self.path.exists():
                return False

            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create directory {self.path.parent}: {e}") from e

            self._write(self.serializer.empty())
            logger.info(f"Document store created at: {self.path.resolve()}")
            return True

    def read(self) -> Any:
        """Parses the current document (no lock, no cache)."""
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise StorageError(f"Error reading {self.path}: {e}") from e

        try:
            return self.serializer.parse(data)
        except (ET.ParseError, ValueError) as e:
            raise StorageError(f"Error parsing {self.path}: {e}") from e

    @contextlib.contextmanager
    def mutate(self) -> Iterator[Any]:
        """
        Exclusive read-modify-write of the document.

        Yields the freshly parsed document; when the block exits normally the
        whole document is written back before the lock is released. If the
        block raises, nothing is written.
        """
        with self._lock:
            document = self.read()
            yield document
            self._write(document)

    def _write(self, document: Any) -> None:
        """Serializes to a sibling temp file, then atomically replaces the target."""
        try:
            data = self.serializer.serialize(document)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Error serializing {self.path}: {e}") from e

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Error saving {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
