"""Demo endpoint that records the SLI metrics."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, Response

from sli_demo.services.container import ServiceContainer
from sli_demo.services.request_service import RequestService

handler_bp = Blueprint("handler", __name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@handler_bp.route("/", methods=ALL_METHODS)
@inject
def handle_request(
    request_service: RequestService = Provide[ServiceContainer.request_service],
) -> Response:
    """Handle a request, failing intentionally 10% of the time.

    Always answers 200; a simulated failure only shows in the body and the
    failed request counter.
    """
    body = request_service.handle()
    return Response(body, status=200, content_type="text/plain; charset=utf-8")
