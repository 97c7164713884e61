from database import engine, Base
import models  # noqa: F401  registers the tables on Base.metadata
import logging

logger = logging.getLogger(__name__)


def init_database():
    """Create all tables that do not exist yet"""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized: {sorted(Base.metadata.tables)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
