"""
todosync CLI - Command Line Interface

Runs one-off syncs, manages the background daemon and shows the
local lists with their link status.
"""

import argparse
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import ConfigManager, TodoSyncConfig

logger = logging.getLogger(__name__)


def setup_logging(config: Optional[TodoSyncConfig] = None, config_dir: Optional[Path] = None,
                  level: Optional[str] = None) -> None:
    """
    Configure logging with console output and, when a config is given, a rotating log file

    Args:
        config: Loaded configuration with logging settings
        config_dir: Directory holding the log file
        level: Level override (e.g., from --verbose)
    """
    level_name = level or (config.logging_level if config else "INFO")
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config is None or config_dir is None:
        return

    log_file = Path(config.log_file)
    if not log_file.is_absolute():
        log_file = Path(config_dir) / log_file
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=config.log_max_bytes, backupCount=config.log_backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not set up file logging: {e}")
        logger.info("Continuing with console logging only")


def _load(args) -> tuple:
    config_manager = ConfigManager(args.config_dir)
    config = config_manager.load_config()
    setup_logging(config, config_manager.config_dir, "DEBUG" if args.verbose else None)
    return config_manager, config


def cmd_sync(args) -> int:
    """Run one sync cycle"""
    from .sync_engine import create_sync_engine

    try:
        config_manager, config = _load(args)
        engine = create_sync_engine(config, config_manager.config_dir)
        try:
            print("🔄 Syncing local lists with the remote API...")
            result = engine.sync_once()
        finally:
            engine.store.close()

        if result.total_changes > 0:
            print(f"✅ Sync completed: {result.summary()}")
        else:
            print("✅ Sync completed: No changes needed")
        if result.count('remote_delete_failed'):
            print(f"⚠️  {result.count('remote_delete_failed')} remote deletes will be retried")
        return 0

    except Exception as e:
        print(f"❌ Sync failed: {e}")
        return 1


def cmd_start(args) -> int:
    """Start daemon for continuous sync"""
    from .daemon import DaemonManager

    try:
        config_manager, config = _load(args)
        print(f"🚀 Starting todosync daemon (every {config.sync_interval_seconds}s)...")
        daemon = DaemonManager(config, config_manager.config_dir)
        return daemon.start_daemon(foreground=args.foreground)

    except Exception as e:
        print(f"❌ Failed to start daemon: {e}")
        return 1


def cmd_stop(args) -> int:
    """Stop running daemon"""
    from .daemon import DaemonManager

    try:
        config_manager = ConfigManager(args.config_dir)
        daemon = DaemonManager(None, config_manager.config_dir)
        return daemon.stop_daemon()

    except Exception as e:
        print(f"❌ Failed to stop daemon: {e}")
        return 1


def cmd_status(args) -> int:
    """Show daemon status"""
    from .daemon import DaemonManager

    try:
        config_manager = ConfigManager(args.config_dir)
        daemon = DaemonManager(None, config_manager.config_dir)
        status = daemon.get_status()

        if status['running']:
            print("✅ todosync daemon is running")
            print(f"   PID: {status.get('pid')}")
            print(f"   Started: {status.get('started')}")
            print(f"   Memory: {status.get('memory_mb')}MB")
        else:
            print("⏹️ todosync daemon is not running")
            if 'error' in status:
                print(f"   Error: {status['error']}")
        return 0

    except Exception as e:
        print(f"❌ Failed to get status: {e}")
        return 1


def cmd_lists(args) -> int:
    """Show local lists with their link and tombstone status"""
    from .state_store import LocalStore

    try:
        config_manager, config = _load(args)
        db_path = config_manager.get_resource_path(config.database_path)
        if not db_path.exists():
            print("📋 No local database yet. Run 'todosync sync' first.")
            return 0

        with LocalStore(str(db_path)) as store:
            lists = store.get_lists()

        print(f"📋 {len(lists)} local list(s):")
        for i, todo_list in enumerate(lists, 1):
            live_items = [item for item in todo_list.items if not item.is_deleted]
            if todo_list.is_deleted:
                state = "🗑️ pending delete"
            elif todo_list.remote_id:
                state = f"🔗 {todo_list.remote_id}"
            else:
                state = "⏳ not yet synced"
            print(f"  {i}. {todo_list.name} ({len(live_items)} items) - {state}")
        return 0

    except Exception as e:
        print(f"❌ Failed to list: {e}")
        return 1


def cmd_config(args) -> int:
    """Configuration management"""
    config_manager = ConfigManager(args.config_dir)

    if args.action == "show":
        try:
            config = config_manager.load_config()
        except ValueError as e:
            print(f"❌ {e}")
            return 1

        source = config_manager.config_file if config_manager.config_exists() else "defaults"
        print(f"⚙️ Current todosync configuration ({source}):")
        print(f"  Remote: {'in-memory fake' if config.use_fake else config.base_url}")
        print(f"  Sync interval: {config.sync_interval_seconds} seconds")
        print(f"  Request timeout: {config.timeout_seconds} seconds")
        print(f"  Database: {config_manager.get_resource_path(config.database_path)}")
        return 0

    if args.action == "check":
        print("🔍 Validating configuration...")
        try:
            config_manager.load_config()
        except ValueError as e:
            print(f"❌ Configuration validation failed: {e}")
            return 1
        print("✅ Configuration is valid")
        return 0

    if args.action == "init":
        if config_manager.config_exists():
            print(f"❌ Configuration already exists: {config_manager.config_file}")
            return 1
        config_manager.save_config(TodoSyncConfig())
        print(f"✅ Wrote default configuration to {config_manager.config_file}")
        return 0

    print(f"❌ Unknown config action: {args.action}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todosync",
        description="Two-way sync between the local todo store and a remote todo API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  todosync sync                 # Run one sync cycle and exit
  todosync start --foreground   # Sync every interval until interrupted
  todosync lists                # Show local lists and their link status
        """
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config-dir', type=Path, default=None,
                        help='Configuration directory (defaults to the user config directory)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', metavar='command')

    sync_parser = subparsers.add_parser('sync', help='Run one sync cycle')
    sync_parser.set_defaults(func=cmd_sync)

    start_parser = subparsers.add_parser('start', help='Start the sync daemon')
    start_parser.add_argument('--foreground', action='store_true', help='Run in the foreground')
    start_parser.set_defaults(func=cmd_start)

    stop_parser = subparsers.add_parser('stop', help='Stop the sync daemon')
    stop_parser.set_defaults(func=cmd_stop)

    status_parser = subparsers.add_parser('status', help='Show daemon status')
    status_parser.set_defaults(func=cmd_status)

    lists_parser = subparsers.add_parser('lists', help='Show local lists')
    lists_parser.set_defaults(func=cmd_lists)

    config_parser = subparsers.add_parser('config', help='Show, check or create configuration')
    config_parser.add_argument('action', choices=['show', 'check', 'init'])
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, 'func', None):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
