"""
Structural transactions.

Every structural write runs inside ``structure_transaction()``: one
atomic block holding a row lock on the singleton structure revision, so
concurrent writers serialise and a cycle check can never be invalidated
by another writer before commit.
"""

import logging
import time
from contextlib import contextmanager

from django.db import OperationalError, connection, transaction
from django.db.models import F

from domain.shared.exceptions import ContentionException

from .models import StructureRevision

logger = logging.getLogger(__name__)

REVISION_ID = 1


@contextmanager
def structure_transaction(lock_timeout_ms=None):
    """
    Atomic block with the structure lock held.

    On PostgreSQL the wait for the lock is bounded by ``lock_timeout``;
    a timeout surfaces as ``OperationalError``.
    """
    with transaction.atomic():
        if lock_timeout_ms and connection.vendor == 'postgresql':
            with connection.cursor() as cursor:
                cursor.execute(f"SET LOCAL lock_timeout = '{int(lock_timeout_ms)}ms'")
        StructureRevision.objects.get_or_create(pk=REVISION_ID)
        revision = StructureRevision.objects.select_for_update().get(pk=REVISION_ID)
        revision.revision = F('revision') + 1
        revision.save(update_fields=['revision', 'updated_at'])
        yield


def run_with_contention_retry(operation, func, retries=3, backoff_seconds=0.05):
    """
    Call ``func``; retry lock timeouts and serialisation failures.

    After ``retries`` retries the failure is raised as
    ``ContentionException``. Domain errors propagate on the first attempt.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return func()
        except OperationalError as exc:
            if attempt > retries:
                logger.error("%s gave up after %d attempts: %s", operation, attempt, exc)
                raise ContentionException(operation, attempt) from exc
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "%s hit contention (attempt %d/%d), retrying in %.3fs",
                operation, attempt, retries + 1, delay,
            )
            time.sleep(delay)
