# campus_market/main.py
import uvicorn

from campus_market.api import create_app
from campus_market.data.database import Base, engine
from campus_market.utils.logging import get_logger

# every model has to be imported before create_all so it is in Base.metadata
from campus_market.data import models  # noqa: F401

logger = get_logger(__name__)

logger.info(f"Initializing database, tables: {list(Base.metadata.tables.keys())}")

try:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
