"""
TOKEN PULSE — Main Entry Point
Serves the token API; the refresh pipeline starts with the app lifespan.
"""
import uvicorn
from token_pulse.config.settings import get_settings
from token_pulse.utils.logger import setup_logging, get_logger

logger = get_logger("main")


def run_api():
    """Run the FastAPI application."""
    settings = get_settings()
    setup_logging()
    logger.info("starting_token_pulse", version=settings.version, port=settings.port)
    uvicorn.run(
        "token_pulse.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run_api()
