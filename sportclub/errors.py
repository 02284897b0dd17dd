"""
Error taxonomy - Errori applicativi

I servizi sollevano queste eccezioni; gli handler in sportclub.server le
trasformano in risposte JSON del tipo {"error": "..."}.
"""
from typing import Any, Dict, Optional

from loguru import logger
from postgrest.exceptions import APIError


class ClubError(Exception):
    """Errore base con codice HTTP e messaggio per l'utente"""

    status_code = 400

    def __init__(self, message: str, debug: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.debug = debug


class ValidationFailure(ClubError):
    """Campi della richiesta mancanti o non validi"""
    status_code = 400


class NotFound(ClubError):
    """Entità richiesta inesistente"""
    status_code = 404


class PersistenceFailure(ClubError):
    """Il database ha rifiutato l'operazione"""
    status_code = 400

    @classmethod
    def from_api_error(cls, message: str, exc: Exception, **extra: Any) -> "PersistenceFailure":
        """Da APIError di postgrest, con code/message/details/hint per il debug"""
        debug = {
            "code": getattr(exc, "code", None),
            "message": getattr(exc, "message", None) or str(exc),
            "details": getattr(exc, "details", None),
            "hint": getattr(exc, "hint", None),
        }
        debug.update(extra)
        return cls(message, debug=debug)


def execute_read(query, fallback: str):
    """
    Esegue una query di lettura.

    Un errore del database diventa PersistenceFailure con il messaggio
    restituito dal database (o `fallback` se assente).
    """
    try:
        return query.execute()
    except APIError as e:
        logger.error(f"{fallback}: {e}")
        raise PersistenceFailure.from_api_error(getattr(e, "message", None) or fallback, e)
