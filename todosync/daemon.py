"""
Background process for todosync

The daemon owns a PID file in the config directory and runs the sync
scheduler until SIGTERM or SIGINT asks it to stop.
"""

import os
import signal
import sys
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone

import psutil

from .config import TodoSyncConfig

logger = logging.getLogger(__name__)


class DaemonManager:
    """Starts, stops and inspects the todosync sync daemon"""

    PROCESS_MARKER = 'todosync'

    def __init__(self, config: Optional[TodoSyncConfig], config_dir: Optional[Path],
                 pid_file: str = "todosync.pid"):
        """
        Args:
            config: Configuration; only needed to run the daemon itself
            config_dir: Directory holding the PID file and the database
            pid_file: Name of the PID file inside config_dir
        """
        self.config = config
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self.pid_file = self.config_dir / pid_file
        self.scheduler = None

    def _read_pid(self) -> Optional[int]:
        try:
            return int(self.pid_file.read_text().strip())
        except (OSError, ValueError):
            return None

    def _write_pid(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(os.getpid()))

    def _clear_pid(self) -> None:
        self.pid_file.unlink(missing_ok=True)

    def _daemon_process(self) -> Optional[psutil.Process]:
        """The live todosync process named by the PID file; a stale file is removed"""
        pid = self._read_pid()
        if pid is not None:
            try:
                proc = psutil.Process(pid)
                if self.PROCESS_MARKER in ' '.join(proc.cmdline()):
                    return proc
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                pass

        if self.pid_file.exists():
            logger.debug(f"Removing stale PID file {self.pid_file}")
            self._clear_pid()
        return None

    def is_running(self) -> bool:
        return self._daemon_process() is not None

    def get_status(self) -> Dict[str, Any]:
        proc = self._daemon_process()
        if proc is None:
            return {'running': False, 'pid_file': str(self.pid_file)}

        try:
            with proc.oneshot():
                return {
                    'running': True,
                    'pid': proc.pid,
                    'pid_file': str(self.pid_file),
                    'started': datetime.fromtimestamp(proc.create_time(), tz=timezone.utc),
                    'memory_mb': round(proc.memory_info().rss / 1024 / 1024, 1),
                    'status': proc.status(),
                }
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            return {'running': False, 'error': f'Could not get status: {e}'}

    def start_daemon(self, foreground: bool = False) -> int:
        """
        Start syncing in the background, or in this process when foreground is set

        Returns:
            Exit code (0 for success)
        """
        if self.is_running():
            print("❌ Daemon is already running")
            return 1

        if not foreground and self._detach() != 0:
            return 1
        return self._run_daemon()

    def stop_daemon(self, timeout_seconds: float = 10.0) -> int:
        """
        Ask the daemon to stop, killing it when it outlives the timeout

        Returns:
            Exit code (0 for success)
        """
        proc = self._daemon_process()
        if proc is None:
            print("❌ Daemon is not running")
            return 1

        try:
            # The running cycle stops at its next remote call
            proc.terminate()
            try:
                proc.wait(timeout=timeout_seconds)
            except psutil.TimeoutExpired:
                logger.warning(f"Process {proc.pid} ignored SIGTERM for {timeout_seconds}s, killing it")
                proc.kill()
                proc.wait(timeout=5)
        except psutil.NoSuchProcess:
            pass
        except (psutil.AccessDenied, psutil.TimeoutExpired) as e:
            print(f"❌ Failed to stop daemon: {e}")
            return 1

        self._clear_pid()
        print("✅ Daemon stopped successfully")
        return 0

    def _detach(self) -> int:
        """
        Detach from the terminal with the Unix double fork

        Only the grandchild returns; both parents exit.
        """
        for attempt in ("First", "Second"):
            try:
                if os.fork() > 0:
                    sys.exit(0)
            except OSError as e:
                logger.error(f"{attempt} fork failed: {e}")
                return 1
            if attempt == "First":
                os.chdir('/')
                os.setsid()
                os.umask(0o022)

        sys.stdout.flush()
        sys.stderr.flush()
        with open(os.devnull, 'r') as dev_null_r, open(os.devnull, 'w') as dev_null_w:
            os.dup2(dev_null_r.fileno(), sys.stdin.fileno())
            os.dup2(dev_null_w.fileno(), sys.stdout.fileno())
            os.dup2(dev_null_w.fileno(), sys.stderr.fileno())
        return 0

    def _run_daemon(self) -> int:
        if not self.config:
            logger.error("Cannot run daemon without configuration")
            return 1

        from .scheduler import SyncScheduler
        from .sync_engine import create_sync_engine

        engine = None
        try:
            self._write_pid()
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

            engine = create_sync_engine(self.config, self.config_dir)
            self.scheduler = SyncScheduler(engine, self.config.sync_interval_seconds)

            logger.info(f"todosync daemon starting (pid {os.getpid()})")
            self.scheduler.start()

        except KeyboardInterrupt:
            logger.info("Daemon interrupted by user")
        except Exception as e:
            logger.error(f"Daemon failed: {e}")
            return 1
        finally:
            if engine is not None:
                engine.store.close()
            self._clear_pid()
            logger.info("Daemon stopped")

        return 0

    def _signal_handler(self, signum: int, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        if self.scheduler:
            self.scheduler.shutdown()
