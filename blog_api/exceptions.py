"""
JSON:API error taxonomy.

Every failure that reaches a client is raised as a ``JsonApiError`` subclass
and rendered by the handlers in ``blog_api.main`` into a top-level
``{"errors": [...]}`` document.  Each error object carries ``title``,
``detail`` and a string-encoded ``status``; validation failures add a
``source.pointer`` naming the offending member of the request document.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One failed validation rule, keyed by field path (``title``, ``relationships.author``)."""

    field: str
    rule: str
    message: str

    @property
    def pointer(self) -> str:
        if self.field.startswith("/"):
            return self.field
        if self.field.startswith("relationships."):
            return "/data/relationships/" + self.field.split(".", 1)[1]
        return "/data/attributes/" + self.field


class JsonApiError(Exception):
    status: int = 500
    title: str = "Internal Server Error"
    detail: str = "An unexpected error occurred."

    def __init__(self, detail: str | None = None, *, title: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        if title is not None:
            self.title = title
        super().__init__(self.detail)

    def to_error_objects(self) -> list[dict]:
        return [{"title": self.title, "detail": self.detail, "status": str(self.status)}]


class BadRequest(JsonApiError):
    status = 400
    title = "Bad Request"
    detail = "The request could not be understood."


class Unauthenticated(JsonApiError):
    status = 401
    title = "Unauthenticated"
    detail = "This action requires authentication."


class Forbidden(JsonApiError):
    status = 403
    title = "Forbidden"
    detail = "This action is unauthorized."


class NotFound(JsonApiError):
    status = 404
    title = "Not Found"
    detail = "The requested resource could not be found."

    @classmethod
    def for_resource(cls, resource_type: str, resource_id) -> "NotFound":
        return cls(f"No records found with the id '{resource_id}' in the '{resource_type}' resource.")


class ValidationFailed(JsonApiError):
    status = 422
    title = "The given data was invalid."

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors) or self.title)

    def to_error_objects(self) -> list[dict]:
        return [
            {
                "title": self.title,
                "detail": error.message,
                "status": str(self.status),
                "source": {"pointer": error.pointer},
            }
            for error in self.errors
        ]
