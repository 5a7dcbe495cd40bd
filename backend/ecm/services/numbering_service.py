"""Identifier allocation: <TYPE>-<YY>-<NNN> numbers per organization, type and year.

Each (org, type, year) key owns one row in sequence_counters. Allocation is an
atomic increment of that row in a short transaction of its own:

- the UPDATE takes the row (or database) write lock, so concurrent callers
  queue behind each other instead of reading the same count;
- the first allocation of a key inserts the row; a concurrent insert loses on
  the primary key and retries against the now-existing row;
- the counter commits before the caller creates its entity, so a failed
  creation leaves a gap in the sequence but the number is never handed out
  again.
"""
import logging
import time
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ecm.config import settings
from ecm.errors import AllocationConflict
from ecm.models.common import EntityType, utcnow
from ecm.models.sequence_counter import SequenceCounter
from ecm.services.subject_service import coerce_entity_type

logger = logging.getLogger(__name__)

# PostgreSQL lock_not_available, serialization_failure, deadlock_detected
CONTENTION_PGCODES = {"55P03", "40001", "40P01"}
UNIQUE_VIOLATION_PGCODE = "23505"


def format_number(entity_type: EntityType, year: int, value: int) -> str:
    """ECR-25-001 ... ECR-25-999, ECR-25-1000: padded to three digits, never truncated."""
    return f"{entity_type.value}-{year % 100:02d}-{value:03d}"


def _is_contention(exc: Exception) -> bool:
    """Lost counter-row insert races and lock/busy errors are retried; anything else propagates."""
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None)
    message = str(orig or exc).lower()
    if isinstance(exc, IntegrityError):
        return pgcode == UNIQUE_VIOLATION_PGCODE or "unique" in message
    return pgcode in CONTENTION_PGCODES or "locked" in message or "busy" in message


def _increment(session: Session, org_id: str, entity_type: EntityType, year: int) -> int:
    """Bump the counter row for the key and return the new value (inside the open transaction)."""
    key = (
        SequenceCounter.org_id == org_id,
        SequenceCounter.entity_type == entity_type,
        SequenceCounter.year == year,
    )
    result = session.execute(
        update(SequenceCounter)
        .where(*key)
        .values(last_value=SequenceCounter.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.add(SequenceCounter(org_id=org_id, entity_type=entity_type, year=year, last_value=1))
        session.flush()
        return 1
    return session.execute(select(SequenceCounter.last_value).where(*key)).scalar_one()


def allocate(
    db: Session,
    org_id: str,
    entity_type: Union[EntityType, str],
    now: Optional[datetime] = None,
) -> str:
    """Return the next unused number for (org_id, entity_type, current UTC year).

    Runs in a dedicated session on the same engine as ``db`` so the caller's
    transaction is never committed or rolled back here.

    Raises:
        ValidationError: entity_type is not ECR, ECO or ECN
        AllocationConflict: contention outlasted NUMBER_ALLOCATION_MAX_ATTEMPTS
        SQLAlchemyError: any other database failure, unretried
    """
    entity_type = coerce_entity_type(entity_type)
    year = (now or utcnow()).year
    max_attempts = settings.NUMBER_ALLOCATION_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        session = Session(bind=db.get_bind())
        try:
            value = _increment(session, org_id, entity_type, year)
            session.commit()
        except (IntegrityError, OperationalError) as exc:
            session.rollback()
            if not _is_contention(exc):
                logger.error("Number allocation for %s/%s/%d failed: %s", org_id, entity_type.value, year, exc)
                raise
            logger.warning(
                "Number allocation contention for %s/%s/%d (attempt %d/%d): %s",
                org_id, entity_type.value, year, attempt, max_attempts, exc.__class__.__name__,
            )
            if attempt < max_attempts:
                time.sleep(settings.NUMBER_ALLOCATION_BACKOFF_SECONDS * attempt)
            continue
        finally:
            session.close()

        number = format_number(entity_type, year, value)
        logger.info("Allocated %s for organization %s", number, org_id)
        return number

    raise AllocationConflict(
        f"Could not allocate a {entity_type.value} number after {max_attempts} attempts; retry the request",
        entity_type=entity_type.value,
        org_id=org_id,
    )
