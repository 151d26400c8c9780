"""
Session storage for uploaded datasets.

A session groups the strings and classifications datasets uploaded
together, keyed by an opaque id. Sessions live in memory and expire after
a fixed time-to-live measured from the oldest upload they contain.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol, Any

import pandas as pd
import structlog

logger = structlog.get_logger(__name__)


class SessionNotFoundError(LookupError):
    """Raised when a session id is unknown or has expired."""


class DatasetNotFoundError(LookupError):
    """Raised when a session holds no data for the requested file type."""


@dataclass
class Dataset:
    """One uploaded CSV file held in a session."""
    headers: List[str]
    df: pd.DataFrame
    original_file_name: str = ""
    upload_time: datetime = field(default_factory=datetime.now)
    last_modified: Optional[datetime] = None

    @property
    def row_count(self) -> int:
        return len(self.df)

    def metadata(self) -> Dict[str, Any]:
        return {
            "headers": self.headers,
            "original_file_name": self.original_file_name,
            "upload_time": self.upload_time.isoformat(),
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "row_count": self.row_count,
        }


@dataclass
class Session:
    datasets: Dict[str, Dataset] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def started_at(self) -> datetime:
        """Oldest upload time, or creation time for a session with no uploads."""
        if not self.datasets:
            return self.created_at
        return min(d.upload_time for d in self.datasets.values())


class SessionStore(Protocol):
    """Key-value store of sessions the HTTP layer depends on."""

    def create(self, datasets: Optional[Dict[str, Dataset]] = None) -> str: ...

    def get(self, session_id: str) -> Session: ...

    def get_dataset(self, session_id: str, file_type: str) -> Dataset: ...

    def put_dataset(self, session_id: str, file_type: str, dataset: Dataset) -> None: ...

    def update_rows(self, session_id: str, file_type: str, df: pd.DataFrame) -> Dataset: ...

    def delete(self, session_id: str) -> bool: ...

    def cleanup_expired(self) -> int: ...

    def stats(self) -> Dict[str, Any]: ...


class InMemorySessionStore:
    """Thread-safe in-memory SessionStore with time-based eviction."""

    def __init__(self, ttl: timedelta = timedelta(hours=24),
                 clock: Callable[[], datetime] = datetime.now):
        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, datasets: Optional[Dict[str, Dataset]] = None) -> str:
        session_id = str(uuid.uuid4())
        with self._lock:
            self._sessions[session_id] = Session(
                datasets=dict(datasets or {}),
                created_at=self._clock(),
            )
        logger.info("session_created", session_id=session_id,
                    file_types=sorted((datasets or {}).keys()))
        return session_id

    def get(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError("Session not found")
        return session

    def get_dataset(self, session_id: str, file_type: str) -> Dataset:
        session = self.get(session_id)
        dataset = session.datasets.get(file_type)
        if dataset is None:
            raise DatasetNotFoundError(f"{file_type} data not found in session")
        return dataset

    def put_dataset(self, session_id: str, file_type: str, dataset: Dataset) -> None:
        session = self.get(session_id)
        with self._lock:
            session.datasets[file_type] = dataset

    def update_rows(self, session_id: str, file_type: str, df: pd.DataFrame) -> Dataset:
        """Replace the rows of a stored dataset, keeping its headers."""
        dataset = self.get_dataset(session_id, file_type)
        with self._lock:
            dataset.df = df
            dataset.last_modified = self._clock()
        logger.info("dataset_updated", session_id=session_id,
                    file_type=file_type, rows=dataset.row_count)
        return dataset

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("session_deleted", session_id=session_id)
        return removed is not None

    def cleanup_expired(self) -> int:
        """Drop sessions older than the TTL. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if now - session.started_at() > self.ttl
            ]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            logger.info("sessions_expired", count=len(expired))
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_sessions": len(self._sessions),
                "sessions": {
                    sid: {
                        "file_types": list(session.datasets.keys()),
                        "counts": {ft: d.row_count for ft, d in session.datasets.items()},
                    }
                    for sid, session in self._sessions.items()
                },
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
