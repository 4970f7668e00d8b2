# ordering/main.py
import uvicorn

from ordering.api import create_app
from ordering.data.database import init_db
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

logger.info("Initializing database...")
try:
    init_db()
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
