import argparse
import json
import logging
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

sys.path.insert(0, str(Path(__file__).parent / "src"))

from srag.config import find_config_path, get_storage_dir, load_config, setup_logging
from srag.loaders import SUPPORTED_EXTENSIONS
from srag.pipelines import IngestionPipeline

logger = logging.getLogger(__name__)


DEBOUNCE_SECONDS = 5.0


class IngestionWatcher(FileSystemEventHandler):
    """Debounced folder watcher that runs incremental ingestion.

    Events are collected until the folder has been quiet for
    ``debounce_seconds``; then only the new or changed files among them
    are preprocessed. Progress is mirrored to a JSON status file.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        status_file: Path,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ):
        self.pipeline = pipeline
        self.watch_dir = pipeline.documents_dir
        self.status_file = status_file
        self.debounce_seconds = debounce_seconds

        self.lock = Lock()
        self.is_processing = False

        self.pending_files: set[str] = set()
        self.debounce_timer: Optional[threading.Timer] = None

    def write_status(
        self,
        status: str,
        started_at: Optional[str] = None,
        completed_at: Optional[str] = None,
        files_processed: int = 0,
        files_failed: int = 0,
        error_message: Optional[str] = None,
    ):
        status_data: dict = {
            "status": status,
            "started_at": started_at,
            "completed_at": completed_at,
            "files_processed": files_processed,
            "files_failed": files_failed,
            "error_message": error_message,
        }
        with open(self.status_file, "w") as f:
            json.dump(status_data, f, indent=2)

    def get_status(self) -> dict:
        if not self.status_file.exists():
            return {"status": "idle"}
        try:
            with open(self.status_file, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, FileNotFoundError):
            return {"status": "idle"}

    def _schedule_ingestion(self, file_path: str):
        with self.lock:
            self.pending_files.add(file_path)
            pending_count = len(self.pending_files)

            if self.debounce_timer is not None:
                self.debounce_timer.cancel()

            self.debounce_timer = threading.Timer(
                self.debounce_seconds, self._trigger_ingestion
            )
            self.debounce_timer.start()

        logger.info(
            f"File event: {Path(file_path).name}. "
            f"Waiting {self.debounce_seconds}s for more files "
            f"({pending_count} pending)"
        )

    def _trigger_ingestion(self):
        with self.lock:
            if not self.pending_files:
                return
            files = sorted(self.pending_files)
            self.pending_files.clear()
            self.debounce_timer = None

        logger.info(f"Debounce complete. Processing {len(files)} file(s)")
        self.run_ingestion_safe([Path(f) for f in files])

    def run_ingestion_safe(self, files: Optional[list[Path]] = None):
        """Run incremental ingestion unless a run is already in progress."""
        with self.lock:
            if self.is_processing:
                logger.info("Already processing, skipping trigger")
                return
            self.is_processing = True

        started_at = datetime.now().isoformat()
        try:
            self.write_status("processing", started_at=started_at)
            results = self.pipeline.process_new_and_changed_documents(files=files)

            completed_at = datetime.now().isoformat()
            self.write_status(
                "complete",
                started_at=started_at,
                completed_at=completed_at,
                files_processed=results["documents"] - results["failed"],
                files_failed=results["failed"],
            )
            logger.info(
                f"Ingestion complete. Documents: {results['documents']}, "
                f"Chunks: {results['chunks']}, Failed: {results['failed']}"
            )
        except Exception as e:
            logger.error(f"Ingestion failed: {e}")
            self.write_status(
                "error",
                started_at=started_at,
                completed_at=datetime.now().isoformat(),
                error_message=str(e),
            )
        finally:
            with self.lock:
                self.is_processing = False

    def _is_supported(self, path: str) -> bool:
        return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS

    def on_created(self, event):
        if not event.is_directory and self._is_supported(event.src_path):
            self._schedule_ingestion(event.src_path)

    def on_modified(self, event):
        if not event.is_directory and self._is_supported(event.src_path):
            self._schedule_ingestion(event.src_path)

    def start(self):
        """Catch up on changes made while stopped, then watch."""
        logger.info(f"Starting ingestion watcher on {self.watch_dir}")
        self.watch_dir.mkdir(parents=True, exist_ok=True)
        self.run_ingestion_safe()

        observer = Observer()
        observer.schedule(self, str(self.watch_dir), recursive=False)
        observer.start()

        logger.info("Ingestion watcher started. Waiting for files...")

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Shutting down watcher...")
            if self.debounce_timer is not None:
                self.debounce_timer.cancel()
            observer.stop()
        observer.join()


def main():
    parser = argparse.ArgumentParser(
        description="Watch the documents folder and ingest new or changed files"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=DEBOUNCE_SECONDS,
        help="Quiet period in seconds before ingesting",
    )

    args = parser.parse_args()

    config_path = find_config_path(args.config)
    config = load_config(config_path)
    setup_logging(config)

    status_file = get_storage_dir(config, config_path) / "ingestion_status.json"
    status_file.parent.mkdir(parents=True, exist_ok=True)

    watcher = IngestionWatcher(
        pipeline=IngestionPipeline.from_config(config, config_path),
        status_file=status_file,
        debounce_seconds=args.debounce,
    )
    watcher.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
