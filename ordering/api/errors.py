# ordering/api/errors.py
from fastapi import HTTPException

from ordering.domain.errors import OrderingError


def http_error(e: OrderingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)
