"""Flask application factory."""

from sli_demo.app import App
from sli_demo.config import Settings


def create_app(settings: "Settings | None" = None, skip_background_services: bool = False) -> App:
    """Create and configure Flask application.

    Args:
        settings: Optional settings instance (loaded from the environment if omitted)
        skip_background_services: Skip starting the metrics exporter (for tests)

    Raises:
        ConfigurationError: If the settings are invalid or the SLI views
            cannot be registered.
    """
    app = App(__name__)

    # Load configuration
    if settings is None:
        settings = Settings.load()

    # Validate configuration before proceeding
    settings.validate_config()

    app.config["TESTING"] = settings.is_testing

    # Create service container
    from sli_demo.services.container import ServiceContainer

    container = ServiceContainer()
    container.config.override(settings)

    # Views must be registered before the first request records into them
    container.sli_metrics()

    container.wire(packages=["sli_demo.api"])

    app.container = container

    from sli_demo.api.handler import handler_bp

    app.register_blueprint(handler_bp)

    # Start background services only when not in CLI/test mode
    if not skip_background_services:
        from sli_demo.services.container import start_background_services

        start_background_services(container)

    return app
