from .router import router as athlete_router

__all__ = ["athlete_router"]
