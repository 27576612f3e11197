"""
JSON:API presenter — turns ORM records into resource objects and documents.

Resource objects have the shape ``{type, id, attributes, relationships,
links}``.  Ids are always strings on the wire.  To-one relationships are
rendered as resource linkage (``{"data": {"type", "id"}}``) built from the
foreign-key columns, so the related row does not need to be loaded unless it
is requested through ``?include=``.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable

from fastapi.responses import JSONResponse

from blog_api.config import settings
from blog_api.exceptions import BadRequest, JsonApiError
from blog_api.models import Article, Category, Comment, User

MEDIA_TYPE = "application/vnd.api+json"

ARTICLE_INCLUDES: frozenset[str] = frozenset({"category", "author"})
COMMENT_INCLUDES: frozenset[str] = frozenset({"article", "author"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def self_link(resource_type: str, resource_id) -> str:
    return f"{settings.API_PREFIX}/{resource_type}/{resource_id}"


def identifier(resource_type: str, resource_id) -> dict | None:
    if resource_id is None:
        return None
    return {"type": resource_type, "id": str(resource_id)}


def _to_one(resource_type: str, resource_id) -> dict:
    return {"data": identifier(resource_type, resource_id)}


def parse_includes(raw: str | None, allowed: frozenset[str]) -> list[str]:
    """
    Parse a comma-separated ``include`` query parameter.

    Raises ``BadRequest`` for any path this resource type cannot include.
    """
    if not raw:
        return []
    paths = [p.strip() for p in raw.split(",") if p.strip()]
    unknown = [p for p in paths if p not in allowed]
    if unknown:
        raise BadRequest(f"The include path '{unknown[0]}' is not allowed.")
    return list(dict.fromkeys(paths))


# ---------------------------------------------------------------------------
# Resource objects
# ---------------------------------------------------------------------------

def article_resource(article: Article) -> dict:
    return {
        "type": "articles",
        "id": str(article.id),
        "attributes": {
            "title": article.title,
            "slug": article.slug,
            "content": article.content,
            "created_at": _iso(article.created_at),
            "updated_at": _iso(article.updated_at),
        },
        "relationships": {
            "category": _to_one("categories", article.category_id),
            "author": _to_one("authors", article.user_id),
        },
        "links": {"self": self_link("articles", article.id)},
    }


def comment_resource(comment: Comment) -> dict:
    return {
        "type": "comments",
        "id": str(comment.id),
        "attributes": {
            "body": comment.body,
            "created_at": _iso(comment.created_at),
        },
        "relationships": {
            "article": _to_one("articles", comment.article_id),
            "author": _to_one("authors", comment.user_id),
        },
        "links": {"self": self_link("comments", comment.id)},
    }


def category_resource(category: Category) -> dict:
    return {
        "type": "categories",
        "id": str(category.id),
        "attributes": {
            "name": category.name,
            "slug": category.slug,
        },
        "links": {"self": self_link("categories", category.id)},
    }


def author_resource(user: User) -> dict:
    # Authors expose no endpoint of their own, hence no self link.
    return {
        "type": "authors",
        "id": str(user.id),
        "attributes": {"name": user.name},
    }


_PRESENTERS = {
    Article: article_resource,
    Comment: comment_resource,
    Category: category_resource,
    User: author_resource,
}


def to_resource(record) -> dict:
    try:
        presenter = _PRESENTERS[type(record)]
    except KeyError:
        raise TypeError(f"No JSON:API presenter for {type(record).__name__}") from None
    return presenter(record)


def included_resources(records: Iterable, includes: list[str]) -> list[dict]:
    """
    Collect the related records named in *includes* from every record,
    de-duplicated by (type, id) and in first-seen order.
    """
    seen: set[tuple[str, str]] = set()
    included: list[dict] = []
    for record in records:
        for path in includes:
            related = getattr(record, path, None)
            if related is None:
                continue
            resource = to_resource(related)
            key = (resource["type"], resource["id"])
            if key in seen:
                continue
            seen.add(key)
            included.append(resource)
    return included


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def resource_document(record, includes: list[str] | None = None) -> dict:
    document = {"data": to_resource(record)}
    if includes:
        document["included"] = included_resources([record], includes)
    return document


def collection_document(
    records: list,
    *,
    resource_type: str,
    page: int,
    page_size: int,
    total: int,
    includes: list[str] | None = None,
) -> dict:
    last_page = max(math.ceil(total / page_size), 1)
    base = f"{settings.API_PREFIX}/{resource_type}"

    def page_link(number: int) -> str:
        return f"{base}?page[number]={number}&page[size]={page_size}"

    document = {
        "data": [to_resource(r) for r in records],
        "meta": {
            "page": {
                "current-page": page,
                "per-page": page_size,
                "total": total,
                "last-page": last_page,
            }
        },
        "links": {
            "first": page_link(1),
            "last": page_link(last_page),
            "prev": page_link(page - 1) if page > 1 else None,
            "next": page_link(page + 1) if page < last_page else None,
        },
    }
    if includes:
        document["included"] = included_resources(records, includes)
    return document


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def json_api_response(content: dict, status_code: int = 200, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=headers, media_type=MEDIA_TYPE)


def created_response(document: dict) -> JSONResponse:
    """201 with a ``Location`` header pointing at the new resource."""
    location = document["data"]["links"]["self"]
    return json_api_response(document, status_code=201, headers={"Location": location})


def error_document(errors: list[dict]) -> dict:
    return {"errors": errors}


def error_response(exc: JsonApiError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status == 401 else None
    return json_api_response(error_document(exc.to_error_objects()), exc.status, headers)
