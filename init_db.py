import asyncio
import logging

from byok.app.core.logging_config import configure_logging
from byok.app.db.session import create_engine, create_tables

logger = logging.getLogger(__name__)


async def init_models():
    engine = create_engine()
    try:
        logger.info("Creating tables...")
        await create_tables(engine)
        logger.info("Tables created")
    except Exception as e:
        logger.error(f"Table creation failed: {e}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_models())
