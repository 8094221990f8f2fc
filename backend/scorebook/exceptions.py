from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    retryable = False

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class NotFound(DomainException):
    """A referenced match, set, action, rotation, team or player is absent.

    Also raised when two ids exist but do not belong together, e.g. a set that
    is not part of the stated match.
    """

    def __init__(self, detail: str, *, code: str) -> None:
        super().__init__(status_code=404, title="Not found", detail=detail, code=code)


class BadRequest(DomainException):
    def __init__(self, detail: str, *, code: str) -> None:
        super().__init__(status_code=400, title="Bad request", detail=detail, code=code)


class Conflict(DomainException):
    """A concurrent write won the race; resubmitting the same command is safe."""

    retryable = True

    def __init__(self, detail: str, *, code: str) -> None:
        super().__init__(status_code=409, title="Conflict", detail=detail, code=code)


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
