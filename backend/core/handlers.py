import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import WorkflowError

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    if isinstance(exc, WorkflowError):
        view = context.get('view')
        logger.info('%s', {
            'event': 'workflow_error',
            'error': exc.code,
            'view': view.__class__.__name__ if view is not None else None,
            'detail': exc.message,
        })
        data = {'detail': exc.message, 'error': exc.code, 'status_code': exc.status_code}
        if exc.details:
            data['errors'] = exc.details
        return Response(data, status=exc.status_code)

    response = exception_handler(exc, context)

    if response is not None and isinstance(response.data, dict):
        response.data['status_code'] = response.status_code
        if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            response.data['detail'] = str(exc)

    return response
