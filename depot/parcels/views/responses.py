from rest_framework import status
from rest_framework.response import Response


def success_response(data, http_status=status.HTTP_200_OK):
    return Response({'success': True, 'data': data}, status=http_status)


def error_response(code, message, data=None, details=None, http_status=status.HTTP_400_BAD_REQUEST):
    body = {
        'success': False,
        'error': {
            'code': code,
            'message': message,
        }
    }
    if details:
        body['error']['details'] = details
    if data is not None:
        body['data'] = data
    return Response(body, status=http_status)
