"""Command line entry point: parse the project flag and serve the demo."""

import argparse
import logging
import os
import sys
import threading
from typing import NoReturn

from dotenv import load_dotenv
from paste.translogger import TransLogger  # type: ignore[import-untyped]
from waitress import serve

from sli_demo import create_app
from sli_demo.app import App
from sli_demo.config import Settings
from sli_metrics.exceptions import ConfigurationError
from sli_metrics.lifecycle import LifecycleEvent

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SLI metrics demo service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--project_id",
        default=None,
        help="Project ID the metrics are exported for (overrides PROJECT_ID)",
    )
    return parser


def load_settings(project_id: str | None) -> Settings:
    """Load and validate settings, exiting on configuration errors."""
    try:
        settings = Settings.load(project_id=project_id)
        settings.validate_config()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    return settings


def serve_app(app: App, settings: Settings) -> None:
    """Serve until the lifecycle coordinator finishes shutting down."""
    lifecycle_coordinator = app.container.lifecycle_coordinator()
    lifecycle_coordinator.initialize()

    if not settings.is_production:
        app.logger.info("Running in debug mode")

        def signal_shutdown(lifecycle_event: LifecycleEvent) -> None:
            if lifecycle_event == LifecycleEvent.AFTER_SHUTDOWN:
                # The dev server cannot be stopped from another thread
                os._exit(0)

        lifecycle_coordinator.register_lifecycle_notification(signal_shutdown)
        app.run(host=settings.host, port=settings.port, debug=True, use_reloader=False)
        return

    def runner() -> None:
        wsgi = TransLogger(app, setup_console_handler=False)
        wsgi.logger.info(f"Using Waitress WSGI server with {settings.waitress_threads} threads")
        serve(wsgi, host=settings.host, port=settings.port, threads=settings.waitress_threads)

    # Run server in daemon thread so the lifecycle coordinator controls exit
    thread = threading.Thread(target=runner, daemon=True)
    thread.start()

    event = threading.Event()

    def signal_shutdown_prod(lifecycle_event: LifecycleEvent) -> None:
        if lifecycle_event == LifecycleEvent.AFTER_SHUTDOWN:
            event.set()

    lifecycle_coordinator.register_lifecycle_notification(signal_shutdown_prod)
    event.wait()


def main() -> NoReturn:
    load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    parser = create_parser()
    args = parser.parse_args()

    settings = load_settings(args.project_id)

    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.error(f"Failed to start: {e}")
        sys.exit(1)

    serve_app(app, settings)
    sys.exit(0)


if __name__ == "__main__":
    main()
