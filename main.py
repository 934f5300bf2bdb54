"""
Entry point for the financial notification parser.

Loads .env, builds the pipeline once so configuration and registry problems
surface before the server binds, then hands over to uvicorn.
"""
import sys
from pathlib import Path

from dotenv import load_dotenv

from core.config import Settings, get_settings
from core.exceptions import ConfigurationError
from core.logger import setup_logger

PROJECT_ROOT = Path(__file__).parent

_env_file = PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

logger = setup_logger(__name__)


def _log_startup(settings: Settings, institution_count: int) -> None:
    classifier = settings.llm_model if settings.llm_enabled else "disabled (rules only)"
    logger.info(f"{settings.app_name} ready: {institution_count} institutions")
    logger.info(f"Ledger webhook: {settings.backend_webhook_url}")
    logger.info(f"Verification forwards: {settings.forward_url}")
    logger.info(f"Classifier: {classifier}, deadline {settings.llm_timeout}s")
    logger.info(f"Categorization: {'on' if settings.categorize_transactions else 'off'}")
    if not settings.inbound_secret_key:
        logger.warning("INBOUND_SECRET_KEY not set, /inbound accepts unauthenticated requests")


def main():
    """Validate configuration and serve the inbound trigger."""
    try:
        settings = get_settings()

        import uvicorn
        from app.api import app, get_pipeline

        pipeline = get_pipeline()
        _log_startup(settings, len(pipeline.matcher.registry))

        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
