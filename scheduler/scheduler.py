"""
Installment status scheduler - Scheduler stati rate
"""
from typing import Optional, Dict
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from sportclub.config import scheduler_config


class FeeStatusScheduler:
    """Ricalcolo notturno degli stati delle rate"""

    def __init__(self, recalc_func):
        """
        Args:
            recalc_func: coroutine di ricalcolo che restituisce i conteggi per stato (async)
        """
        self.scheduler = AsyncIOScheduler()
        self.recalc_func = recalc_func
        self._is_running = False
        self._last_run: Optional[datetime] = None
        self._last_result: Optional[Dict[str, int]] = None

    def setup(self):
        """Registrazione job"""
        self.scheduler.add_job(
            self._run_recalculation,
            CronTrigger(hour=scheduler_config.recalc_hour, minute=scheduler_config.recalc_minute),
            id="daily_status_recalc",
            name="Daily Installment Status Recalculation",
            replace_existing=True
        )
        logger.info(
            f"Ricalcolo stati rate pianificato ogni giorno alle "
            f"{scheduler_config.recalc_hour:02d}:{scheduler_config.recalc_minute:02d}"
        )

    async def _run_recalculation(self):
        """Esegue un ricalcolo se non ce n'è già uno in corso"""
        if self._is_running:
            logger.warning("Ricalcolo stati già in corso, esecuzione saltata")
            return

        self._is_running = True
        logger.info("=== Ricalcolo stati rate ===")

        try:
            self._last_result = await self.recalc_func()
            self._last_run = datetime.now()
            logger.info(f"Ricalcolo completato: {self._last_result}")
        except Exception as e:
            logger.error(f"Errore ricalcolo stati rate: {e}")
        finally:
            self._is_running = False

    def start(self):
        self.setup()
        self.scheduler.start()
        logger.info("Scheduler avviato")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Scheduler arrestato")

    def get_status(self) -> dict:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None
            })

        return {
            "is_running": self._is_running,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_result": self._last_result,
            "jobs": jobs
        }

    async def run_now(self):
        """Esegue subito il ricalcolo"""
        await self._run_recalculation()
