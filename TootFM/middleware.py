from django.conf import settings

JWT_AUTH_COOKIE = "tootfm_token"


class JWTAuthCookieMiddleware:
    """
    Lets the browser client authenticate with the JWT stored in a cookie.
    The ?jwt= query parameter is only honoured while DEBUG is on.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.cookie_name = getattr(settings, "JWT_AUTH_COOKIE", JWT_AUTH_COOKIE)

    def __call__(self, request):
        token = request.COOKIES.get(self.cookie_name)
        if not token and settings.DEBUG:
            token = request.GET.get("jwt")

        if token and "HTTP_AUTHORIZATION" not in request.META:
            if not token.lower().startswith("bearer "):
                token = f"Bearer {token}"
            request.META["HTTP_AUTHORIZATION"] = token
        return self.get_response(request)
