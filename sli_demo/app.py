"""Flask application class carrying the service container."""

from typing import TYPE_CHECKING

from flask import Flask

if TYPE_CHECKING:
    from sli_demo.services.container import ServiceContainer


class App(Flask):
    """Flask application with a typed ``container`` attribute.

    create_app() attaches the container so the CLI runner can reach the
    lifecycle coordinator and exporter after the app is built.
    """

    container: "ServiceContainer"
