"""
guidelint - File watch mode.

Continuously lints recently edited files first.
Writes findings to timestamped JSON session logs.

Usage:
    guidelint --watch
    guidelint --watch --interval 1.0 --full-scan-mins 30

Log files are written to: ~/.guidelint/logs/
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from . import __version__
from .config import LintConfig, should_exclude_path
from .reporting import Finding
from .runner import lint_source, run
from .scanner import file_kind, load_source

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".guidelint" / "logs"


def _get_log_path(log_dir: Path) -> Path:
    """Get timestamped log file path, creating the directory if needed."""
    log_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    return log_dir / f"guidelint_{ts}.json"


class DebouncedQueue:
    """
    Thread-safe queue of changed files, newest change first.

    A file handed out less than debounce_seconds ago stays queued until
    its window passes, so a burst of saves is linted once, in its final
    state.
    """

    def __init__(self, debounce_seconds: float = 2.0) -> None:
        self.debounce_seconds = debounce_seconds
        self._lock = threading.Lock()
        self._pending: dict[str, float] = {}  # path -> newest change time
        self._handed_out: dict[str, float] = {}  # path -> when last popped

    def push(self, path: Path, ts: float) -> None:
        key = str(path)
        with self._lock:
            if ts > self._pending.get(key, float("-inf")):
                self._pending[key] = ts

    def pop_ready(self, now: float) -> Optional[Path]:
        """Pop the newest change outside its debounce window, if any."""
        with self._lock:
            ready = [
                (ts, key) for key, ts in self._pending.items()
                if now - self._handed_out.get(key, float("-inf")) >= self.debounce_seconds
            ]
            if not ready:
                return None
            _, key = max(ready)
            del self._pending[key]
            self._handed_out[key] = now
            return Path(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


class ChangeHandler(FileSystemEventHandler):
    """Queues created/modified files that guidelint knows how to lint."""

    def __init__(self, cfg: LintConfig, queue: DebouncedQueue) -> None:
        super().__init__()
        self.cfg = cfg
        self.queue = queue

    def wants(self, path: Path) -> bool:
        if file_kind(self.cfg, path) is None:
            return False
        try:
            rel = path.relative_to(self.cfg.root)
        except ValueError:
            rel = path
        return not should_exclude_path(self.cfg, rel)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        p = Path(str(event.src_path))
        if self.wants(p):
            self.queue.push(p, time.time())

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)


class JsonSessionLog:
    """Appends lint results to a JSON log file."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self._lock = threading.Lock()
        self._entries: list[dict[str, Any]] = []
        self._append({
            "type": "session_start",
            "timestamp": datetime.now().isoformat(),
            "version": __version__,
        })

    def log_findings(self, path: str, findings: list[Finding]) -> None:
        """Log findings for a file."""
        self._append({
            "type": "lint_result",
            "timestamp": datetime.now().isoformat(),
            "file": path,
            "error_count": sum(1 for f in findings if f.severity == "ERROR"),
            "warning_count": sum(1 for f in findings if f.severity == "WARN"),
            "findings": [asdict(f) for f in findings],
        })

    def log_full_scan(self, error_count: int, warning_count: int) -> None:
        """Log a full scan completion."""
        self._append({
            "type": "full_scan",
            "timestamp": datetime.now().isoformat(),
            "error_count": error_count,
            "warning_count": warning_count,
        })

    @property
    def entries(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._entries)

    def _append(self, entry: dict[str, Any]) -> None:
        with self._lock:
            self._entries.append(entry)
            self.log_path.write_text(json.dumps(self._entries, indent=2, default=str), encoding="utf-8")


def lint_path(cfg: LintConfig, path: Path) -> list[Finding]:
    """Lint a single file; a vanished or unreadable file yields no findings."""
    try:
        src = load_source(path)
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return []
    findings = lint_source(cfg, src)
    if cfg.errors_only:
        findings = [f for f in findings if f.severity == "ERROR"]
    return findings


def _print_findings(findings: list[Finding], max_warns: int = 50) -> None:
    """Print findings to stdout, errors first."""
    errors = [f for f in findings if f.severity == "ERROR"]
    warns = [f for f in findings if f.severity != "ERROR"]

    for f in errors + warns[:max_warns]:
        print(str(f))
        if f.evidence:
            print(f"    {f.evidence}")

    if len(warns) > max_warns:
        print(f"... {len(warns) - max_warns} more warnings suppressed")


def _full_scan(cfg: LintConfig, session_log: JsonSessionLog) -> int:
    """Run a full scan."""
    reporter = run(cfg.root, cfg)
    print(reporter.render_human())
    session_log.log_full_scan(len(reporter.errors), len(reporter.warnings))
    return 1 if reporter.errors else 0


def run_watch(
    cfg: LintConfig,
    interval: float = 0.75,
    debounce_seconds: float = 2.0,
    full_scan_mins: int = 45,
    log_dir: Path = DEFAULT_LOG_DIR,
) -> int:
    """Watch cfg.root and lint files as they change until interrupted."""
    log_path = _get_log_path(log_dir)
    session_log = JsonSessionLog(log_path)

    queue = DebouncedQueue(debounce_seconds)
    handler = ChangeHandler(cfg, queue)

    observer = Observer()
    observer.schedule(handler, str(cfg.root), recursive=True)
    observer.start()

    logger.info(f"Watching {cfg.root}")
    logger.info(f"interval={interval}s debounce={debounce_seconds}s full_scan={full_scan_mins}m")
    logger.info(f"Logging to {log_path}")

    last_full_scan = time.time()

    try:
        while True:
            now = time.time()

            if full_scan_mins > 0 and (now - last_full_scan) >= full_scan_mins * 60:
                logger.info("Full scan starting")
                rc = _full_scan(cfg, session_log)
                logger.info(f"Full scan finished rc={rc}")
                last_full_scan = now

            path = queue.pop_ready(now)
            if path is None:
                time.sleep(interval)
                continue

            findings = lint_path(cfg, path)
            if findings:
                print(f"\n[guidelint] {path} (queue={len(queue)})")
                _print_findings(findings)
                session_log.log_findings(str(path), findings)

            time.sleep(interval)

    except KeyboardInterrupt:
        logger.info(f"Stopping; log written to {log_path}")
    finally:
        observer.stop()
        observer.join()

    return 0
