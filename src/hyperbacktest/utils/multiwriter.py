"""Fan-out writer that sends each write to several destinations at once."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import IO, Any, List


class WriterNotFoundError(LookupError):
    """The writer is not registered with the multi-writer."""


class WriterAlreadyLoadedError(ValueError):
    """The writer is already registered with the multi-writer."""


class ShortWriteError(IOError):
    """A writer accepted fewer characters than it was given."""


class MultiWriter:
    """Write the same data to every registered writer concurrently.

    Writers are compared by identity, so the same stream cannot be
    registered twice.  ``write`` returns ``len(data)`` when every writer
    succeeds; otherwise the first failure observed is raised.
    """

    def __init__(self, *writers: IO[Any]) -> None:
        self._writers: List[IO[Any]] = []
        self._lock = threading.Lock()
        for writer in writers:
            self.add(writer)

    @property
    def writers(self) -> List[IO[Any]]:
        with self._lock:
            return list(self._writers)

    def add(self, writer: IO[Any]) -> None:
        with self._lock:
            if any(w is writer for w in self._writers):
                raise WriterAlreadyLoadedError(f"{type(writer).__name__} already loaded")
            self._writers.append(writer)

    def remove(self, writer: IO[Any]) -> None:
        with self._lock:
            for i, w in enumerate(self._writers):
                if w is writer:
                    # order is not preserved, the last writer takes the freed slot
                    self._writers[i] = self._writers[-1]
                    self._writers.pop()
                    return
        raise WriterNotFoundError(f"{type(writer).__name__} not found")

    @staticmethod
    def _write_one(writer: IO[Any], data: Any) -> int:
        try:
            n = writer.write(data)
        except Exception as exc:
            raise IOError(f"{type(writer).__name__} {exc}") from exc
        if n is None:
            n = len(data)
        if n != len(data):
            raise ShortWriteError(f"{type(writer).__name__} short write")
        return n

    def write(self, data: Any) -> int:
        writers = self.writers
        if not writers:
            return len(data)
        with ThreadPoolExecutor(max_workers=len(writers)) as pool:
            futures = [pool.submit(self._write_one, w, data) for w in writers]
            for fut in futures:
                fut.result()
        return len(data)

    def flush(self) -> None:
        for writer in self.writers:
            flush = getattr(writer, "flush", None)
            if flush is not None:
                flush()


__all__ = ["MultiWriter", "WriterNotFoundError", "WriterAlreadyLoadedError", "ShortWriteError"]
