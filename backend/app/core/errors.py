"""
Errores de dominio de valuación.

Cada error lleva un `code` estable que el frontend usa para distinguir,
por ejemplo, "en uso" de "dato inválido".
"""
import logging
from contextlib import contextmanager
from typing import Optional, Type

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


class ValuationError(ValueError):
    code = "VALUATION_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFound(ValuationError):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


class DuplicateCode(ValuationError):
    code = "DUPLICATE_CODE"


class DuplicateName(ValuationError):
    code = "DUPLICATE_NAME"


class DuplicateSymbol(ValuationError):
    code = "DUPLICATE_SYMBOL"


class DuplicateSku(ValuationError):
    code = "DUPLICATE_SKU"


class InUse(ValuationError):
    code = "IN_USE"
    http_status = status.HTTP_409_CONFLICT


class CannotDeactivateBase(ValuationError):
    code = "CANNOT_DEACTIVATE_BASE"


class BaseCurrencyImmutable(ValuationError):
    code = "BASE_CURRENCY_IMMUTABLE"


class InvalidTimestamp(ValuationError):
    code = "INVALID_TIMESTAMP"


class InvalidValue(ValuationError):
    code = "INVALID_VALUE"


class MissingRate(ValuationError):
    code = "MISSING_RATE"


def to_http_exception(exc: ValuationError) -> HTTPException:
    return HTTPException(status_code=exc.http_status, detail=exc.to_detail())


@contextmanager
def valuation_transaction(db: Session, duplicate_error: Optional[Type[ValuationError]] = None, commit: bool = True):
    """
    One request = one transaction. Commits on success; on any rejection rolls
    back and raises the HTTPException carrying {code, message}.
    duplicate_error maps a unique-constraint race past the service checks.
    """
    try:
        yield
        if commit:
            db.commit()
    except ValuationError as exc:
        db.rollback()
        logger.warning("valuation rejected code=%s message=%s", exc.code, exc.message)
        raise to_http_exception(exc)
    except IntegrityError as exc:
        db.rollback()
        logger.warning("valuation integrity error: %s", exc.orig)
        if duplicate_error is not None:
            raise to_http_exception(duplicate_error("El registro ya existe"))
        raise to_http_exception(InvalidValue("Datos inválidos"))
