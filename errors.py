from fastapi import HTTPException


class Unauthorized(HTTPException):
    """Missing, malformed or expired credential."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(HTTPException):
    """Authenticated, but not allowed to do this."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    """Entity id does not resolve, or resolves to something the caller does not own."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class InvalidRequest(HTTPException):
    """A business rule rejected the request (stock, status, discount code, empty cart)."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)
