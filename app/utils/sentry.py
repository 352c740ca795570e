import sentry_sdk
import structlog

from app.settings import settings

logger = structlog.stdlib.get_logger(__name__)


def init_sentry():
    """Report uncaught proxy errors to Sentry when a DSN is configured."""
    if not settings.SENTRY_DSN:
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.01,
        send_default_pii=False,
        environment=settings.SENTRY_ENVIRONMENT or settings.MODE,
    )
    logger.info("Sentry initialised", environment=settings.SENTRY_ENVIRONMENT)
