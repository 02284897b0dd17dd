from .scheduler import FeeStatusScheduler

__all__ = ["FeeStatusScheduler"]
