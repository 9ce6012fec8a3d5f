"""Filesystem sink for generated documents, written in parallel batches."""

import hashlib
import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .generator import batched, merge_document
from .models import OutputFile

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

DEFAULT_BATCH_SIZE = 50
DEFAULT_WORKERS = 10


# =============================================================================
# Thread-Safe File Sink
# =============================================================================

def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FileSink:
    """
    Thread-safe sink that writes documents under an output directory.

    Existing files are kept unless overwrite is set. Files whose content is
    unchanged are never rewritten. Mergeable documents are merged with what
    is already on disk, unless overwrite or overwrite_common_files is set,
    in which case the incoming document replaces the file.
    """

    def __init__(
        self,
        output_dir: str,
        overwrite: bool = False,
        overwrite_common_files: bool = False,
        pretty: bool = False,
    ):
        self.output_dir = Path(output_dir)
        self.overwrite = overwrite
        self.overwrite_common_files = overwrite_common_files
        self.pretty = pretty
        self.locks: dict[str, threading.Lock] = {}
        self.global_lock = threading.Lock()

    def _get_lock(self, file_path: str) -> threading.Lock:
        """Get or create a lock for a specific file."""
        with self.global_lock:
            if file_path not in self.locks:
                self.locks[file_path] = threading.Lock()
            return self.locks[file_path]

    def get_file_path(self, path: str) -> Path:
        """Map a document path such as /bible/bsb/books to a file under the output dir."""
        relative = path.lstrip("/")
        if not Path(relative).suffix:
            relative += ".json"
        return self.output_dir / relative

    def _encode(self, content) -> bytes:
        indent = 2 if self.pretty else None
        return json.dumps(content, indent=indent, ensure_ascii=False).encode("utf-8")

    def write(self, file: OutputFile) -> bool:
        """Write one document. Returns False when it was skipped."""
        file_path = self.get_file_path(file.path)
        lock = self._get_lock(str(file_path))

        with lock:
            content = file.resolve_content()
            exists = file_path.exists()
            replace = self.overwrite or (self.overwrite_common_files and file.mergeable)

            if exists and file.mergeable and not replace:
                with open(file_path, "r", encoding="utf-8") as f:
                    existing = json.load(f)
                content = merge_document(file.path, existing, content)
            elif exists and not replace:
                logger.debug("Exists, skipping: %s", file_path)
                return False

            data = self._encode(content)
            if exists and sha256_hex(file_path.read_bytes()) == sha256_hex(data):
                logger.debug("Matches checksum: %s", file_path)
                return False

            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(data)
            return True


# =============================================================================
# Progress Tracking
# =============================================================================

class ProgressTracker:
    """Track and display emission progress."""

    def __init__(self, total: int):
        self.total = total
        self.written = 0
        self.skipped = 0
        self.lock = threading.Lock()
        self.start_time = time.time()

    def update(self, written: bool = True):
        with self.lock:
            if written:
                self.written += 1
            else:
                self.skipped += 1

    def get_stats(self) -> dict:
        with self.lock:
            elapsed = time.time() - self.start_time
            done = self.written + self.skipped
            rate = done / elapsed if elapsed > 0 else 0
            return {
                "written": self.written,
                "skipped": self.skipped,
                "total": self.total,
                "elapsed": elapsed,
                "rate": rate,
            }

    def print_progress(self, current: str = ""):
        stats = self.get_stats()
        done = stats["written"] + stats["skipped"]
        pct = done / stats["total"] * 100 if stats["total"] else 100.0
        elapsed_str = time.strftime("%H:%M:%S", time.gmtime(stats["elapsed"]))

        print(
            f"\r[{done:,}/{stats['total']:,}] "
            f"{pct:.1f}% | "
            f"⏱ {elapsed_str} elapsed | "
            f"📄 {current:<40}",
            end="",
            flush=True
        )


@dataclass
class EmitStats:
    written: int
    skipped: int
    elapsed: float


def emit_files(
    files: Sequence[OutputFile],
    sink: FileSink,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_workers: int = DEFAULT_WORKERS,
    show_progress: bool = False,
) -> EmitStats:
    """
    Hand documents to the sink in fixed-size batches, each batch written in parallel.

    Write errors propagate to the caller.
    """
    progress = ProgressTracker(len(files))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for batch in batched(files, batch_size):
            futures = {executor.submit(sink.write, file): file for file in batch}
            for future in as_completed(futures):
                progress.update(written=future.result())
                if show_progress:
                    progress.print_progress(futures[future].path)

    stats = progress.get_stats()
    return EmitStats(written=stats["written"], skipped=stats["skipped"], elapsed=stats["elapsed"])
