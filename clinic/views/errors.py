"""
Plain-text error responses.

Every error answer of the API is the HTTP reason phrase followed by a newline,
never JSON and never a traceback.
"""
from django.http import HttpResponse


def status_response(status_code: int) -> HttpResponse:
    response = HttpResponse(status=status_code, content_type="text/plain; charset=utf-8")
    response.content = f"{response.reason_phrase}\n"
    response["X-Content-Type-Options"] = "nosniff"
    return response


def not_found(request, exception=None):
    return status_response(404)


def server_error(request):
    return status_response(500)
