import logging
import time

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """Log one line per API request: method, path, status, user and timing."""
    PREFIX = '/api/'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if not path.startswith(self.PREFIX):
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        # DRF authenticates inside the view, so the user is read afterwards
        user = getattr(request, 'user', None)
        user_id = user.pk if user is not None and user.is_authenticated else None
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(level, '%s %s -> %s user=%s %.1fms',
                   request.method, path, response.status_code, user_id, elapsed_ms)
        return response
