#!/usr/bin/env python3
"""
Run the webhook listener that keeps the search index in sync.

On startup the saved sync token is loaded; if there is none the initial sync
runs before the listener starts accepting webhooks.

Usage:
    python scripts/serve.py [--config CONFIG_PATH]
"""

import argparse
import sys

import structlog
import uvicorn

from indexsync.service import SyncService
from indexsync.utils.config_loader import ConfigLoader, ConfigurationError
from indexsync.utils.logging_config import configure_logging
from indexsync.webhook import create_app

log = structlog.stdlib.get_logger()


def main():
    """Main entry point for the webhook listener."""
    parser = argparse.ArgumentParser(description="Webhook listener for indexsync")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    args = parser.parse_args()

    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(args.config)
        config_loader.validate_config(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(
        log_level=config.logging.log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )

    service = SyncService(config)
    report = service.start()
    if report is not None and not report.success:
        log.error("startup_sync_failed", errors=report.errors)

    app = create_app(service, secret=config.webhook.secret)
    try:
        uvicorn.run(app, host=config.webhook.host, port=config.webhook.port, log_config=None)
    finally:
        service.shutdown()


if __name__ == "__main__":
    main()
