"""Caches used during an attribution run.

RunCache holds the process-lifetime, in-memory caches shared by every
project in a run: fetched package metadata and license file contents read
from package archives. ArchiveCache is a persistent SQLite store of
downloaded package archives so repeated runs do not download them again.
"""

import asyncio
import contextlib
import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Optional

from nuget_attributions.models import PackageIdentity, PackageMetadata


class RunCache:
    """In-memory caches keyed by PackageIdentity.

    Entries are never evicted; the size is bounded by the run. Concurrent
    fetches of the same identity are serialised with a per-identity lock so
    the registry is queried at most once per identity, whichever coroutine
    gets there first.
    """

    def __init__(self) -> None:
        self._metadata: dict[PackageIdentity, PackageMetadata] = {}
        self._license_files: dict[PackageIdentity, Optional[str]] = {}
        self._locks: dict[PackageIdentity, asyncio.Lock] = {}

    def lock(self, identity: PackageIdentity) -> asyncio.Lock:
        """Return the lock guarding fetches of the given identity."""
        return self._locks.setdefault(identity, asyncio.Lock())

    def get_metadata(self, identity: PackageIdentity) -> Optional[PackageMetadata]:
        return self._metadata.get(identity)

    def set_metadata(self, identity: PackageIdentity, metadata: PackageMetadata) -> None:
        # First writer wins
        self._metadata.setdefault(identity, metadata)

    def has_license_file(self, identity: PackageIdentity) -> bool:
        return identity in self._license_files

    def get_license_file(self, identity: PackageIdentity) -> Optional[str]:
        return self._license_files.get(identity)

    def set_license_file(self, identity: PackageIdentity, text: Optional[str]) -> None:
        """Record license file text; None records that extraction failed."""
        self._license_files.setdefault(identity, text)

    def __len__(self) -> int:
        return len(self._metadata)


class ArchiveCache:
    """SQLite cache for downloaded package archives.

    Archives are stored as blobs with a 100-day TTL. Package versions are
    immutable on the registry, the TTL only bounds the size of the database.

    Attributes:
        db_path: Path to the SQLite database file.
        ttl_days: Number of days before cache entries expire (default: 100).
    """

    DEFAULT_TTL_DAYS = 100

    def __init__(
        self,
        db_path: Optional[Path] = None,
        ttl_days: int = DEFAULT_TTL_DAYS,
    ):
        """Initialize the archive cache.

        Args:
            db_path: Path to SQLite database. If None, uses
                ~/.cache/nuget_attributions/archives.db.
            ttl_days: Number of days before cache entries expire.
        """
        if db_path is None:
            cache_dir = Path.home() / ".cache" / "nuget_attributions"
            cache_dir.mkdir(parents=True, exist_ok=True)
            db_path = cache_dir / "archives.db"

        self.db_path = db_path
        self.ttl_days = ttl_days
        self._conn: Optional[sqlite3.Connection] = None
        self._init_database()

    def __enter__(self) -> "ArchiveCache":
        """Enter context manager, keeping connection open."""
        self._conn = sqlite3.connect(self.db_path)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager, closing connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @contextlib.contextmanager
    def _connect(self):
        """Get a database connection.

        Reuses the connection opened by the context manager, otherwise opens
        one for the duration of the call.
        """
        if self._conn:
            yield self._conn
        else:
            conn = sqlite3.connect(self.db_path)
            try:
                yield conn
            finally:
                conn.close()

    def _init_database(self) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS archive_cache (
                    package_name TEXT NOT NULL,
                    package_version TEXT NOT NULL,
                    content BLOB NOT NULL,
                    downloaded_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    PRIMARY KEY (package_name, package_version)
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_archive_expires
                ON archive_cache(expires_at)
                """
            )
            conn.commit()

    def get(self, name: str, version: str) -> Optional[bytes]:
        """Retrieve a cached archive.

        Package names are compared case-insensitively, as on the registry.

        Returns:
            The archive bytes, or None on a miss or an expired entry.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT content, expires_at
                FROM archive_cache
                WHERE package_name = ? AND package_version = ?
                """,
                (name.lower(), version),
            )
            row = cursor.fetchone()

        if row is None:
            return None

        content, expires_at_str = row
        if datetime.now(UTC) >= datetime.fromisoformat(expires_at_str):
            return None

        return bytes(content)

    def set(self, name: str, version: str, content: bytes) -> None:
        """Store an archive, replacing any previous entry."""
        downloaded_at = datetime.now(UTC)
        expires_at = downloaded_at + timedelta(days=self.ttl_days)

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                REPLACE INTO archive_cache
                (package_name, package_version, content, downloaded_at, expires_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    name.lower(),
                    version,
                    sqlite3.Binary(content),
                    downloaded_at.isoformat(),
                    expires_at.isoformat(),
                ),
            )
            conn.commit()

    def purge_expired(self) -> int:
        """Delete expired entries.

        Returns:
            Number of deleted entries.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM archive_cache WHERE expires_at <= ?",
                (datetime.now(UTC).isoformat(),),
            )
            conn.commit()
            return cursor.rowcount

    def clear(
        self,
        package: Optional[str] = None,
        version: Optional[str] = None,
    ) -> None:
        """Clear cache entries.

        Args:
            package: If specified, clear only this package.
                If None, clear all entries.
            version: If specified (with package), clear only this
                specific version. Ignored if package is None.
        """
        with self._connect() as conn:
            cursor = conn.cursor()

            if package is None:
                cursor.execute("DELETE FROM archive_cache")
            elif version is None:
                cursor.execute(
                    "DELETE FROM archive_cache WHERE package_name = ?",
                    (package.lower(),),
                )
            else:
                cursor.execute(
                    """
                    DELETE FROM archive_cache
                    WHERE package_name = ? AND package_version = ?
                    """,
                    (package.lower(), version),
                )
            conn.commit()

    def info(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with cache information:
                - path: Path to cache database file
                - count: Number of cached archives
                - size_bytes: Database file size in bytes
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM archive_cache")
            count = cursor.fetchone()[0]

        size_bytes = self.db_path.stat().st_size if self.db_path.exists() else 0

        return {
            "path": str(self.db_path),
            "count": count,
            "size_bytes": size_bytes,
        }
