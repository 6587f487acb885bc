"""
Per-client admission gate for uploads.

A client may have at most one upload in flight. Clients are identified by
their network address only, so independent clients sharing an address (NAT,
proxies) are treated as one and the later request is rejected while the
earlier one is still being handled.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterator
from uuid import uuid4

from canvas_upload.core.errors import AdmissionConflict

logger = logging.getLogger(__name__)


class AdmissionGate:
    def __init__(self):
        self._in_flight: dict[str, str] = {}  # client_id -> marker
        self._lock = threading.Lock()

    def acquire(self, client_id: str) -> str:
        """Register an in-flight upload for ``client_id`` and return its marker.

        Raises AdmissionConflict, leaving the gate untouched, when the client
        already has an upload in flight.
        """
        with self._lock:
            if client_id in self._in_flight:
                raise AdmissionConflict(client_id)
            marker = uuid4().hex
            self._in_flight[client_id] = marker
        logger.debug(f"Admitted upload {marker} for {client_id}")
        return marker

    def release(self, client_id: str) -> None:
        with self._lock:
            marker = self._in_flight.pop(client_id, None)
        if marker:
            logger.debug(f"Released upload {marker} for {client_id}")

    @contextmanager
    def hold(self, client_id: str) -> Iterator[str]:
        marker = self.acquire(client_id)
        try:
            yield marker
        finally:
            self.release(client_id)

    def is_active(self, client_id: str) -> bool:
        return client_id in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)
