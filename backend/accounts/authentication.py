from rest_framework_simplejwt.authentication import JWTAuthentication


class QueryParamJWTAuthentication(JWTAuthentication):
    """
    Accept the access token from ``?token=`` as well as the Authorization header.

    Browsers' EventSource cannot set request headers, so streaming endpoints
    take the JWT from the query string instead.
    """

    query_param = "token"

    def authenticate(self, request):
        header_result = super().authenticate(request)
        if header_result is not None:
            return header_result

        raw_token = request.query_params.get(self.query_param)
        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token.encode("utf-8"))
        return self.get_user(validated_token), validated_token
