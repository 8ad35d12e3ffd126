from fastapi import HTTPException, status


class UnauthorizedError(HTTPException):
    """401 with a Bearer challenge."""

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ConfigurationError(HTTPException):
    """500 raised when a required integration is not configured."""

    def __init__(self, detail: str = "Service misconfigured"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class BadGatewayError(HTTPException):
    """502 raised when an upstream provider fails or times out."""

    def __init__(self, detail: str = "Upstream service error"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class ServiceUnavailableError(HTTPException):
    def __init__(self, detail: str = "Service unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
