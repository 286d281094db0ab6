"""Custom filters for uvicorn access logging."""

import logging


class ExcludeMetricsFilter(logging.Filter):
    """
    Logging filter to exclude monitoring endpoint requests from access logs.

    This filter prevents excessive log noise from health checks and
    Prometheus scraping. Requests to paths like /metrics and /health
    will not appear in uvicorn's access logs.

    Note: This class is imported by uvicorn's logging config before the app
    starts, so it does not import telerelay.settings at module level.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()

        # Lazy import, only when actually filtering
        try:
            from telerelay.settings import app_settings

            excluded_paths = app_settings.LOG_EXCLUDED_PATHS
        except Exception:
            # Fallback to hardcoded paths if settings can't be loaded
            excluded_paths = ["/metrics", "/health"]

        return not any(path in message for path in excluded_paths)
