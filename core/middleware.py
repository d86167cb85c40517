from __future__ import annotations

import logging
import time
from typing import Callable

from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        started = time.monotonic()
        response = self.get_response(request)
        if request.path.startswith("/api/"):
            user = getattr(request, "user", None)
            logger.info(
                "%s %s -> %s in %dms (user=%s)",
                request.method,
                request.path,
                response.status_code,
                int((time.monotonic() - started) * 1000),
                getattr(user, "pk", None) if user is not None and user.is_authenticated else None,
            )
        return response
