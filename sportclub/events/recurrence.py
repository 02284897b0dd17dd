"""
Recurring event expansion - Espansione eventi ricorrenti
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field

from sportclub.errors import ValidationFailure

Boundary = Union[date, datetime]


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class RecurrenceRule(BaseModel):
    """{frequency, interval}"""
    frequency: Frequency
    interval: int = Field(default=1, ge=1)


class RecurrenceLimitExceeded(ValidationFailure):
    """La regola produrrebbe più occorrenze del consentito"""


def parse_boundary(value: Optional[str]) -> Optional[Boundary]:
    """
    "2024-01-15"           → date (giorno di calendario incluso)
    "2024-01-15T18:00:00Z" → datetime
    """
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value
    text = str(value).strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _offset(rule: RecurrenceRule, step: int):
    """Scostamento della step-esima occorrenza dalla prima"""
    if rule.frequency == Frequency.daily:
        return timedelta(days=rule.interval * step)
    if rule.frequency == Frequency.weekly:
        return timedelta(days=7 * rule.interval * step)
    return relativedelta(months=rule.interval * step)


def _within(current: datetime, until: Boundary) -> bool:
    if isinstance(until, datetime):
        if current.tzinfo is not None and until.tzinfo is None:
            until = until.replace(tzinfo=current.tzinfo)
        elif current.tzinfo is None and until.tzinfo is not None:
            current = current.replace(tzinfo=until.tzinfo)
        return current <= until
    return current.date() <= until


def expand_occurrences(
    start: datetime,
    end: datetime,
    rule: RecurrenceRule,
    until: Optional[Boundary] = None,
    max_occurrences: Optional[int] = None
) -> List[Tuple[datetime, datetime]]:
    """
    Coppie (inizio, fine) dalla prima occorrenza finché inizio <= until.

    - until assente → until = inizio, una sola occorrenza
    - un until solo data include tutto quel giorno
    - i passi mensili si contano dalla prima occorrenza, quindi il giorno
      del mese viene limitato mese per mese senza slittare (31 gen → 29 feb → 31 mar)
    - oltre max_occurrences solleva RecurrenceLimitExceeded
    """
    if until is None:
        until = start

    occurrences = []
    step = 0
    while True:
        offset = _offset(rule, step)
        current_start = start + offset
        if not _within(current_start, until):
            break
        if max_occurrences is not None and len(occurrences) >= max_occurrences:
            raise RecurrenceLimitExceeded(
                f"La ricorrenza genera più di {max_occurrences} eventi: ridurre il periodo o aumentare l'intervallo"
            )
        occurrences.append((current_start, end + offset))
        step += 1

    return occurrences
