import asyncio

from pitchcoach_backend.app.core.logging import setup_logging
from pitchcoach_backend.app.db.session import Base, get_engine
from pitchcoach_backend.app.db import models  # noqa: F401  ensure model classes are registered


async def init_models(engine=None):
    """
    Creates all tables defined in SQLAlchemy models.
    Safe to run multiple times due to CREATE IF NOT EXISTS behavior.
    Production schemas are managed by alembic; this is for local/dev databases.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Allows:
#   python -m pitchcoach_backend.app.db.init_db
if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_models())
