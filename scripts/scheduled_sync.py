#!/usr/bin/env python3
"""
Scheduled synchronization script for indexsync.

This script performs one synchronization pass:
- Runs the initial sync when no checkpoint exists (or with --full-sync)
- Otherwise fetches changes since the saved sync token and applies them
- Logs synchronization statistics

Designed to be run on a schedule (e.g., via cron) alongside or instead of
the webhook listener.

Usage:
    python scripts/scheduled_sync.py [--config CONFIG_PATH] [--full-sync]
"""

import argparse
import sys

import structlog

from indexsync.service import SyncService
from indexsync.utils.config_loader import ConfigLoader, ConfigurationError
from indexsync.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()


def perform_sync(config_path: str | None = None, full_sync: bool = False) -> dict:
    """
    Perform one synchronization pass.

    Args:
        config_path: Optional path to configuration file
        full_sync: If True, re-index everything instead of syncing incrementally

    Returns:
        Dictionary with sync statistics
    """
    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(config_path)
        config_loader.validate_config(config)
        configure_logging(
            log_level=config.logging.log_level,
            json_logs=config.logging.json_logs,
            log_file=config.logging.log_file,
        )
        service = SyncService(config)
    except (ConfigurationError, ValueError, RuntimeError) as e:
        log.error("sync_setup_failed", error=str(e))
        return {"success": False, "error": str(e)}

    report = service.run_once(full_sync=full_sync)
    if report is None:
        return {"success": False, "error": "Another sync run is in progress"}

    stats = {
        "success": report.success,
        "sync_type": report.mode.value,
        "records_upserted": report.records_upserted,
        "records_deleted": report.records_deleted,
        "start_time": report.start_time.isoformat(),
        "end_time": report.end_time.isoformat(),
        "duration_seconds": report.duration_seconds,
    }
    if report.errors:
        stats["error"] = "; ".join(report.errors)

    log.info("scheduled_sync_finished", **stats)
    return stats


def main():
    """Main entry point for scheduled sync script."""
    parser = argparse.ArgumentParser(description="Scheduled synchronization for indexsync")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--full-sync",
        action="store_true",
        help="Re-index everything instead of syncing incrementally",
    )

    args = parser.parse_args()

    stats = perform_sync(config_path=args.config, full_sync=args.full_sync)

    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)

    if stats.get("success"):
        print("Status: SUCCESS")
        print(f"Sync Type: {stats.get('sync_type', 'unknown')}")
        print(f"Records Upserted: {stats.get('records_upserted', 0)}")
        print(f"Records Deleted: {stats.get('records_deleted', 0)}")
        print(f"Duration: {stats.get('duration_seconds', 0):.2f} seconds")
    else:
        print("Status: FAILED")
        print(f"Error: {stats.get('error', 'Unknown error')}")

    print("=" * 60)

    sys.exit(0 if stats.get("success") else 1)


if __name__ == "__main__":
    main()
