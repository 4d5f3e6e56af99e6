from collections import Counter
from pathlib import Path
import typer
from sudo_indexer.config.settings import FACTORY_ADDRESS, LOG_LEVEL, STARTING_BLOCK
from sudo_indexer.indexer.projector import StateProjector
from sudo_indexer.indexer.tracker import PairAddressTracker
from sudo_indexer.ingestion.block_source import read_blocks
from sudo_indexer.storage.db import SessionLocal, engine
from sudo_indexer.storage.db_utils import check_connection, init_db, latest_processed_block
from sudo_indexer.utils.shortname import setup_logging
import logging

log = logging.getLogger(__name__)

app = typer.Typer(help="sudoAMM v2 Starknet indexer")


@app.callback()
def configure(log_level: str = typer.Option(LOG_LEVEL, help="DEBUG / INFO / WARNING")):
    setup_logging(log_level.upper())


@app.command("init-db")
def init_db_command():
    """Create the projection tables."""
    init_db(engine)
    log.info("[cli] Tables ready")


@app.command("replay")
def replay(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines block dump"),
    starting_block: int = typer.Option(STARTING_BLOCK, help="Skip blocks below this number"),
    factory_address: str = typer.Option(FACTORY_ADDRESS, help="LSSVMPairFactory address"),
):
    """
    Project every block of a dump, committing once per block.
    """
    db = None
    outcomes = Counter()
    blocks = 0
    try:
        db = SessionLocal()
        tracker = PairAddressTracker(factory_address)
        tracker.load(db)
        projector = StateProjector(db, tracker)

        log.info(f"[cli] Factory: {tracker.factory_address}")
        log.info(f"[cli] Starting block: {starting_block}")

        for block in read_blocks(path, starting_block):
            results = projector.process_block(block)
            db.commit()
            blocks += 1
            outcomes.update(r.outcome.value for r in results)

        log.info(f"[cli] Replayed {blocks} blocks, {len(tracker)} known pools")
        for outcome, count in sorted(outcomes.items()):
            typer.echo(f"{outcome:<26} {count}")
    except Exception:
        log.error("Replay failed", exc_info=True)
        if db:
            db.rollback()
        raise typer.Exit(code=1)
    finally:
        if db:
            db.close()
            log.info("[cli] Database session closed")


@app.command("status")
def status():
    """Check the database and report indexing progress."""
    db = SessionLocal()
    try:
        check_connection(db)
        tracker = PairAddressTracker(FACTORY_ADDRESS)
        tracker.load(db)
        typer.echo("database       ok")
        typer.echo(f"known pools    {len(tracker)}")
        typer.echo(f"latest block   {latest_processed_block(db)}")
    except Exception as e:
        log.error(f"[cli] Database check failed: {e}")
        raise typer.Exit(code=1)
    finally:
        db.close()


def main():
    app()


if __name__ == "__main__":
    main()
