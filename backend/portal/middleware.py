import logging
import time
import uuid
from typing import Callable

from django.conf import settings
from django.http import HttpRequest, HttpResponse

logger = logging.getLogger('django.request')

REQUEST_ID_HEADER = 'X-Request-ID'


class RequestTimingMiddleware:
    """Tag each request with an id and warn about slow API calls."""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]):
        self.get_response = get_response

    def __call__(self, request: HttpRequest):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.request_id = request_id

        started = time.perf_counter()
        response = self.get_response(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        response[REQUEST_ID_HEADER] = request_id

        enabled = bool(getattr(settings, 'SLOW_REQUEST_LOG_ENABLED', True))
        threshold_ms = int(getattr(settings, 'SLOW_REQUEST_LOG_MS', 1200))
        if enabled and elapsed_ms >= threshold_ms:
            user = getattr(request, 'user', None)
            authenticated = user is not None and user.is_authenticated
            logger.warning('%s', {
                'event': 'slow_request',
                'request_id': request_id,
                'method': request.method,
                'path': request.path,
                'status': getattr(response, 'status_code', None),
                'duration_ms': round(elapsed_ms, 2),
                'user_id': user.pk if authenticated else None,
                'role': getattr(user, 'role', None) if authenticated else None,
            })
        return response
