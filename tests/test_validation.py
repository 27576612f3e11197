"""
Validation engine tests — rule evaluation called directly with a session,
without HTTP in between.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.exceptions import FieldError, ValidationFailed
from blog_api.models import MAX_ID, parse_id
from blog_api.schemas import ResourceObjectIn
from blog_api.validation import (
    SLUG_PATTERN,
    article_create_validator,
    article_update_validator,
    comment_create_validator,
    extract_linkage,
)


def _article(attributes: dict, relationships: dict | None = None, **extra) -> ResourceObjectIn:
    return ResourceObjectIn(type="articles", attributes=attributes, relationships=relationships or {}, **extra)


async def _failures(validator, db, resource, **kwargs) -> list[FieldError]:
    with pytest.raises(ValidationFailed) as exc_info:
        await validator.validate(db, resource, **kwargs)
    return exc_info.value.errors


def _rules_for(errors: list[FieldError], field: str) -> list[str]:
    return [e.rule for e in errors if e.field == field]


# ---------------------------------------------------------------------------
# Linkage normalisation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "value, expected",
    [
        ({"data": {"type": "categories", "id": "3"}}, ("categories", "3")),
        ({"type": "categories", "id": 3, "attributes": {}}, ("categories", 3)),
        ({"id": 7}, (None, 7)),
        (7, (None, 7)),
        ({"type": "categories"}, ("categories", None)),
        ({"data": None}, None),
        (None, None),
        ([], None),
    ],
)
def test_extract_linkage(value, expected):
    assert extract_linkage(value) == expected


# ---------------------------------------------------------------------------
# Slug rules
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("slug", ["abc", "nuevo-articulo", "a1-b2-c3", "2024", "x"])
async def test_well_formed_slugs_pass(db_session: AsyncSession, slug):
    assert SLUG_PATTERN.match(slug)
    errors = await _failures(article_create_validator, db_session, _article({"title": "Valid", "slug": slug}))
    assert _rules_for(errors, "slug") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "slug, rules",
    [
        ("with_underscores", ["no_underscores"]),
        ("-leading", ["no_starting_dashes"]),
        ("trailing-", ["no_ending_dashes"]),
        ("-both-", ["no_starting_dashes", "no_ending_dashes"]),
        ("_-all-_-", ["no_underscores", "no_ending_dashes"]),
        ("double--dash", ["slug"]),
        ("UPPER", ["slug"]),
        ("nuevo-articulo\n", ["slug"]),
        ("spaces here", ["slug"]),
    ],
)
async def test_malformed_slugs_report_distinct_rules(db_session: AsyncSession, slug, rules):
    errors = await _failures(article_create_validator, db_session, _article({"title": "Valid", "slug": slug}))
    assert _rules_for(errors, "slug") == rules


@pytest.mark.asyncio
async def test_non_string_slug_stops_at_type_rule(db_session: AsyncSession):
    errors = await _failures(article_create_validator, db_session, _article({"title": "Valid", "slug": 12}))
    assert _rules_for(errors, "slug") == ["string"]


@pytest.mark.asyncio
async def test_unique_slug_ignores_the_record_being_updated(db_session: AsyncSession, factory):
    article = await factory.article(slug="taken-slug")
    resource = _article({"title": "Still valid", "slug": "taken-slug", "content": "Body"})

    payload = await article_update_validator.validate(db_session, resource, ignore_id=article.id)
    assert payload.attributes == {"title": "Still valid", "slug": "taken-slug", "content": "Body"}
    assert payload.relationships == {}

    other = await factory.article()
    errors = await _failures(article_update_validator, db_session, resource, ignore_id=other.id)
    assert [(e.field, e.rule) for e in errors] == [("slug", "unique")]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_missing_fields_report_required_only(db_session: AsyncSession):
    errors = await _failures(article_create_validator, db_session, _article({}))
    assert [(e.field, e.rule) for e in errors] == [
        ("title", "required"),
        ("slug", "required"),
        ("content", "required"),
        ("relationships.category", "required"),
    ]


@pytest.mark.asyncio
async def test_blank_string_is_treated_as_missing(db_session: AsyncSession):
    errors = await _failures(article_create_validator, db_session, _article({"title": "   "}))
    assert _rules_for(errors, "title") == ["required"]


@pytest.mark.asyncio
async def test_short_title_is_rejected_even_when_everything_else_is_valid(db_session: AsyncSession, factory):
    category = await factory.category()
    resource = _article(
        {"title": "abc", "slug": "fine-slug", "content": "Body"},
        {"category": {"data": {"type": "categories", "id": str(category.id)}}},
    )
    errors = await _failures(article_create_validator, db_session, resource)
    assert [(e.field, e.rule) for e in errors] == [("title", "min")]


@pytest.mark.asyncio
async def test_valid_article_payload_resolves_category(db_session: AsyncSession, factory):
    category = await factory.category()
    resource = _article(
        {"title": "Valid title", "slug": "valid-title", "content": "Body", "ignored": True},
        {"category": {"data": {"type": "categories", "id": str(category.id)}}, "author": {"data": None}},
    )
    payload = await article_create_validator.validate(db_session, resource)
    assert payload.attributes == {"title": "Valid title", "slug": "valid-title", "content": "Body"}
    assert payload.relationships["category"].id == category.id
    assert "author" not in payload.relationships


@pytest.mark.asyncio
async def test_update_rejects_null_category(db_session: AsyncSession, factory):
    article = await factory.article()
    resource = _article(
        {"title": "Valid title", "slug": article.slug, "content": "Body"},
        {"category": {"data": None}},
    )
    errors = await _failures(article_update_validator, db_session, resource, ignore_id=article.id)
    assert [(e.field, e.rule) for e in errors] == [("relationships.category", "required")]


@pytest.mark.asyncio
async def test_document_type_and_id_are_checked(db_session: AsyncSession, factory):
    article = await factory.article()
    resource = ResourceObjectIn(
        type="comments",
        id="999",
        attributes={"title": "Valid title", "slug": article.slug, "content": "Body"},
    )
    errors = await _failures(article_update_validator, db_session, resource, ignore_id=article.id)
    assert [e.pointer for e in errors] == ["/data/type", "/data/id"]


@pytest.mark.asyncio
async def test_comment_rules_resolve_both_relationships(db_session: AsyncSession, factory):
    user = await factory.user()
    article = await factory.article()
    resource = ResourceObjectIn(
        type="comments",
        attributes={"body": "Nice"},
        relationships={
            "article": {"data": {"type": "articles", "id": str(article.id)}},
            "author": {"data": {"type": "users", "id": str(user.id)}},
        },
    )
    payload = await comment_create_validator.validate(db_session, resource)
    assert payload.relationships["article"].id == article.id
    assert payload.relationships["author"].id == user.id


def test_field_error_pointers():
    assert FieldError("title", "required", "").pointer == "/data/attributes/title"
    assert FieldError("relationships.author", "exists", "").pointer == "/data/relationships/author"
    assert FieldError("/data/type", "in", "").pointer == "/data/type"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12", 12),
        (" 7 ", 7),
        (3, 3),
        (str(MAX_ID), MAX_ID),
        (str(MAX_ID + 1), None),
        (2**64, None),
        ("9" * 30, None),
        ("²", None),
        ("١", None),
        ("-1", None),
        (0, None),
        (True, None),
        (1.0, None),
        ("", None),
    ],
)
def test_parse_id(raw, expected):
    assert parse_id(raw) == expected
