import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import ClinicError, ValidationError, ConflictError, NotFoundError, AuthorizationError

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
}


def domain_exception_handler(exc, context):
    """
    Maps domain errors to HTTP responses.
    Anything else goes through the default DRF handler.
    """
    if isinstance(exc, ClinicError):
        view = context.get('view')
        logger.info(f"{exc.code} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}")
        return Response(exc.as_dict(), status=STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST))

    return exception_handler(exc, context)
