"""
Success envelope shared by every API view.
"""
from rest_framework import status as http_status
from rest_framework.response import Response


def api_response(data=None, message: str = None, status: int = http_status.HTTP_200_OK) -> Response:
    """Wrap a payload as ``{"success": true, "message": ..., "data": ...}``."""
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return Response(body, status=status)
