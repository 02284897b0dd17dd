"""
Sport club management - Punto di ingresso
"""
import asyncio
import sys
from loguru import logger

from database.supabase_client import get_admin_client
from scheduler.scheduler import FeeStatusScheduler
from sportclub.config import app_config
from sportclub.fees.service import MembershipFeeService
from sportclub.log import setup_logging


async def recalculate() -> dict:
    """Un ricalcolo degli stati delle rate"""
    service = MembershipFeeService(get_admin_client())
    return await service.recalculate_statuses()


async def run_scheduler():
    scheduler = FeeStatusScheduler(recalc_func=recalculate)
    scheduler.start()

    logger.info("Modalità scheduler attiva (Ctrl+C per terminare)")

    try:
        while True:
            await asyncio.sleep(60)
            logger.debug(f"Stato scheduler: {scheduler.get_status()}")
    except (KeyboardInterrupt, asyncio.CancelledError):
        scheduler.stop()
        logger.info("Scheduler terminato")


def main():
    """Avvio"""
    import argparse

    parser = argparse.ArgumentParser(description="Gestionale società sportiva")
    parser.add_argument(
        "--mode",
        choices=["serve", "recalculate", "scheduler"],
        default="serve",
        help="Modalità di esecuzione"
    )
    parser.add_argument("--host", default=app_config.host)
    parser.add_argument("--port", type=int, default=app_config.port)
    parser.add_argument("--reload", action="store_true", help="Ricarica automatica (sviluppo)")

    args = parser.parse_args()

    setup_logging()

    if args.mode == "serve":
        import uvicorn
        uvicorn.run("sportclub.server:app", host=args.host, port=args.port, reload=args.reload)

    elif args.mode == "recalculate":
        try:
            updated = asyncio.run(recalculate())
        except Exception as e:
            logger.error(f"Ricalcolo fallito: {e}")
            sys.exit(1)

        print("\n=== Stati rate ricalcolati ===")
        for status, count in updated.items():
            print(f"  {status}: {count}")

    elif args.mode == "scheduler":
        try:
            asyncio.run(run_scheduler())
        except KeyboardInterrupt:
            pass


if __name__ == "__main__":
    main()
