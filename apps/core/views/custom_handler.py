"""JSON bodies for Django's 404/500 pages, so API clients never receive HTML."""

import structlog

from common.views_utils import OrjsonResponse

log = structlog.get_logger(__name__)

NOT_FOUND = {"detail": "The requested endpoint was not found."}
SERVER_ERROR = {"detail": "An internal server error occurred."}


def json_404_handler(request, exception):
    log.info("Unknown endpoint", method=request.method, path=request.path)
    return OrjsonResponse(NOT_FOUND, status=404)


def json_500_handler(request):
    return OrjsonResponse(SERVER_ERROR, status=500)
