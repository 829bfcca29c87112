from django.http import JsonResponse


class JsonNotFoundMiddleware:
    """Answer unknown ``/api/*`` routes with the JSON error envelope."""
    PREFIX = '/api/'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        path = request.path or ''
        if (
            response.status_code == 404
            and path.startswith(self.PREFIX)
            and not response.get('Content-Type', '').startswith('application/json')
        ):
            return JsonResponse(
                {'ok': False, 'error': {'code': 'NOT_FOUND', 'message': 'Route not found'}},
                status=404,
            )
        return response
