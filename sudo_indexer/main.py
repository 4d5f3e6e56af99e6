# sudo_indexer/main.py
from fastapi import FastAPI
from sudo_indexer.api import api
from sudo_indexer.config.settings import LOG_LEVEL
from sudo_indexer.storage.db import engine
from sqlalchemy import text
import logging
from sudo_indexer.utils.shortname import setup_logging

app = FastAPI(title="sudoAMM indexer")

setup_logging(LOG_LEVEL)
log = logging.getLogger(__name__)

app.include_router(api.router)


@app.on_event("startup")
def check_db_connection():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            log.info("Database connected.")
    except Exception as e:
        log.error(f"DB connection failed: {e}")
