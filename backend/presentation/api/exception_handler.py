from django.db import IntegrityError
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from domain.shared.exceptions import (
    ContentionException,
    CorruptStructureException,
    DomainException,
    EntityAlreadyExistsException,
    EntityNotFoundException,
    LifecycleException,
    MissingCostException,
    StructuralIntegrityException,
    ValidationException,
)

# Checked in order; the first matching class decides the status.
STATUS_BY_EXCEPTION = [
    (EntityNotFoundException, status.HTTP_404_NOT_FOUND),
    (ValidationException, status.HTTP_400_BAD_REQUEST),
    (CorruptStructureException, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StructuralIntegrityException, status.HTTP_409_CONFLICT),
    (LifecycleException, status.HTTP_409_CONFLICT),
    (EntityAlreadyExistsException, status.HTTP_409_CONFLICT),
    (MissingCostException, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ContentionException, status.HTTP_503_SERVICE_UNAVAILABLE),
]

RETRY_AFTER_SECONDS = 1


def domain_status(exc):
    for exc_class, code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_class):
            return code
    return status.HTTP_400_BAD_REQUEST


def custom_exception_handler(exc, context):
    """
    Map engine errors to HTTP responses.

    Body: ``{"error": CODE, "detail": message, "details": {...}}``.
    Anything else falls through to the default DRF handler.
    """
    if isinstance(exc, DomainException):
        response = Response(
            {
                'error': exc.code,
                'detail': exc.message,
                'details': exc.details,
            },
            status=domain_status(exc),
        )
        if exc.retryable:
            response['Retry-After'] = str(RETRY_AFTER_SECONDS)
        return response

    if isinstance(exc, ProtectedError):
        return Response(
            {
                'error': 'PROTECTED',
                'detail': 'Object is referenced by other records and cannot be deleted.',
                'details': {},
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, IntegrityError):
        return Response(
            {
                'error': 'INTEGRITY_ERROR',
                'detail': 'Data integrity violation.',
                'details': {},
            },
            status=status.HTTP_409_CONFLICT,
        )

    return exception_handler(exc, context)
