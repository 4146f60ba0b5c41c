import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InvalidInput(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid'


class RecordNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Record not found.'
    default_code = 'not_found'


class StateConflict(APIException):
    """A transition was attempted from the wrong state; nothing was changed."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The record was changed by someone else.'
    default_code = 'conflict'


def envelope(data=None, error=None):
    return {"success": error is None, "data": data, "error": error}


def flatten_detail(detail):
    """Reduce DRF's nested error detail to one readable line."""
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            message = flatten_detail(value)
            parts.append(message if field == 'non_field_errors' else f"{field}: {message}")
        return '; '.join(parts)
    if isinstance(detail, (list, tuple)):
        return ' '.join(flatten_detail(item) for item in detail)
    return str(detail)


def envelope_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data
        if isinstance(detail, dict) and set(detail) == {'detail'}:
            detail = detail['detail']
        response.data = envelope(error=flatten_detail(detail))
        return response

    view = context.get('view')
    logger.exception("Unhandled error in %s", view.__class__.__name__ if view else 'view')
    return Response(envelope(error="Internal server error"),
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR)
