import logging
from contextlib import contextmanager

from fastapi import HTTPException, status

from coworking.errors import BulkAvailabilityError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors():
    """Translate data-store errors raised inside the block into HTTP responses."""
    try:
        yield
    except ValidationError as e:
        logger.error(f"Rejected invalid request: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except BulkAvailabilityError as e:
        logger.error(f"Bulk availability partially failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(e),
                "applied": e.applied,
                "failures": [
                    {"desk_id": f.desk_id, "date": f.date.isoformat(), "reason": f.reason}
                    for f in e.failures
                ],
            },
        ) from e
    except PersistenceError as e:
        logger.error(f"Storage unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
