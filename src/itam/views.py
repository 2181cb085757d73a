"""Project-level views for ITAM."""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def ratelimited_view(request, exception=None):
    """Return 429 with Retry-After header on rate limit."""
    response = JsonResponse(
        {
            "success": False,
            "error": "rate_limited",
            "message": "Rate limit exceeded. Please try again later.",
        },
        status=429,
    )
    response["Retry-After"] = "60"
    return response


def health_check(request):
    """Health check endpoint for monitoring and load balancers."""
    db_ok = True
    try:
        connection.ensure_connection()
    except DatabaseError:
        logger.exception("Health check could not reach the database")
        db_ok = False

    return JsonResponse(
        {"status": "ok" if db_ok else "degraded", "db": db_ok},
        status=200 if db_ok else 503,
    )
