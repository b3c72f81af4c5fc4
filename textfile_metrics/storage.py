"""Storage backends for metrics.

``FileStore`` persists metrics to disk in the Prometheus text format, so they can be
inspected or scraped (for example by node_exporter's textfile collector), and reads
them back before every update.

Concurrency: there is no lock around the read-merge-write cycle. Two updates that
interleave, in threads or in separate processes, can both start from the same file
contents; the later write then replaces the file and the earlier update is lost.
Callers that need serialized updates must provide it themselves.
"""
import abc
import logging
import os
from typing import Optional

from .config import Config, default_metrics_path
from .exceptions import StorageError, ValidationError
from .merge import MergeEngine
from .models import COUNTER, GAUGE, HistogramCommand, Snapshot, UpdateCommand
from .parser import TextFormatParser
from .renderer import TextFormatRenderer

logger = logging.getLogger(__name__)


class StorageAdapter(abc.ABC):
    """Contract shared by every storage backend."""

    @abc.abstractmethod
    def update_counter(self, command: UpdateCommand) -> None:
        ...

    @abc.abstractmethod
    def update_gauge(self, command: UpdateCommand) -> None:
        ...

    @abc.abstractmethod
    def update_histogram(self, command: HistogramCommand) -> None:
        ...

    @abc.abstractmethod
    def collect(self) -> Snapshot:
        ...

    @abc.abstractmethod
    def flush(self) -> None:
        ...


class FileStore(StorageAdapter):
    """Keeps all metrics in one text file that is fully rewritten on each update.

    The file is opened and closed within a single read or write, so deleting or
    truncating it between calls simply looks like an empty store.
    """

    def __init__(self, path: Optional[str] = None, config: Optional[Config] = None):
        if config is None:
            config = Config()
        config.validate()
        self.path = path or config.METRICS_PATH or default_metrics_path()
        self.parser = TextFormatParser()
        self.renderer = TextFormatRenderer(omit_empty_help=config.OMIT_EMPTY_HELP)
        self.merger = MergeEngine()

    def collect(self) -> Snapshot:
        """Read and parse the backing file. A missing file is created empty."""
        try:
            size = os.stat(self.path).st_size
        except FileNotFoundError:
            self._write_text("")
            return Snapshot()
        except OSError as e:
            raise self._storage_error("stat", e) from e

        if size == 0:
            return Snapshot()

        try:
            # a write cut off inside a multi-byte character must not block collection;
            # the damaged line then fails the grammar and is skipped
            with open(self.path, "r", encoding="utf-8", errors="replace") as f:
                contents = f.read()
        except FileNotFoundError:
            # removed between stat and open
            return Snapshot()
        except OSError as e:
            raise self._storage_error("read", e) from e

        families = self.parser.parse(contents)
        logger.debug("Read %d metric families from %s", len(families), self.path)
        return Snapshot.from_families(families)

    def update_counter(self, command: UpdateCommand) -> None:
        self._check_type(command, COUNTER)
        self.write(self.merger.apply(self.collect(), command))

    def update_gauge(self, command: UpdateCommand) -> None:
        self._check_type(command, GAUGE)
        self.write(self.merger.apply(self.collect(), command))

    def update_histogram(self, command: HistogramCommand) -> None:
        if not isinstance(command, HistogramCommand):
            raise ValidationError(f"update_histogram expects a HistogramCommand, got {type(command).__name__}")
        self.write(self.merger.apply_histogram(self.collect(), command))

    def flush(self) -> None:
        """Discard all stored metrics."""
        self.write(Snapshot())

    def write(self, snapshot: Snapshot) -> None:
        """Render ``snapshot`` and overwrite the backing file with it."""
        self._write_text(self.renderer.render(snapshot))
        logger.debug("Wrote %d metric families to %s", len(snapshot), self.path)

    def _write_text(self, content: str) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise self._storage_error("write", e) from e

    def _storage_error(self, action: str, error: Exception) -> StorageError:
        logger.error(f"Unable to {action} metrics file {self.path}: {error}")
        return StorageError(f"Unable to {action} metrics file {self.path}: {error}", path=self.path)

    @staticmethod
    def _check_type(command: UpdateCommand, expected: str) -> None:
        if not isinstance(command, UpdateCommand):
            raise ValidationError(f"Expected an UpdateCommand, got {type(command).__name__}")
        if command.type != expected:
            raise ValidationError(f"Metric {command.name} is a {command.type}, not a {expected}")
