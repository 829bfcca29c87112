from rest_framework import status as http_status
from rest_framework.response import Response


def ok(data=None, message=None, status=http_status.HTTP_200_OK, headers=None) -> Response:
    """Success envelope: ``{"ok": true, "data": ..., "message"?: ...}``."""
    body = {'ok': True, 'data': data}
    if message:
        body['message'] = message
    return Response(body, status=status, headers=headers)
