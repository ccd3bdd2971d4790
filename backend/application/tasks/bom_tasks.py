"""
BOM Tasks.

Celery tasks for BOM-related operations.
"""

from celery import shared_task
import logging

import sentry_sdk

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def validate_structure_integrity(self):
    """
    Validate BOM structure integrity.

    Checks:
    - No circular references among active lines
    - No duplicate active (parent, child) pairs
    - No self-referencing lines

    The engine rejects all of these at write time; a finding means the
    data was changed around it and an operator has to look.
    """
    from application.services import BOMEngine

    report = BOMEngine().check_integrity()

    if report['ok']:
        logger.info("BOM integrity sweep: %d active lines, no issues", report['lines_checked'])
        return report

    logger.critical(
        "BOM integrity sweep found issues: cycle=%s duplicates=%d self_references=%d",
        report['cycle'],
        len(report['duplicate_pairs']),
        len(report['self_references']),
    )
    with sentry_sdk.new_scope() as scope:
        scope.set_context('bom_integrity', report)
        sentry_sdk.capture_message("BOM structure integrity violation", level='fatal')
    return report
