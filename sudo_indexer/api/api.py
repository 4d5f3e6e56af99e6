from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sudo_indexer.storage.db import get_db
from sudo_indexer.storage.db_utils import check_connection, latest_processed_block

router = APIRouter()


@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        check_connection(db)
        latest = latest_processed_block(db)
    except SQLAlchemyError as e:
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(e)})
    return {"status": "ok", "latest_block": latest}
