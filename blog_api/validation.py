"""
Declarative validation for incoming JSON:API resource objects.

Design notes
------------
- A ``Validator`` is an ordered list of ``FieldRules``; each holds the
  ordered ``Rule`` entries for one field path (``title``, ``slug``,
  ``relationships.category``).  Every field is evaluated and every failure
  is collected, so a single 422 response lists all problems at once.
- A failing *bail* rule (``required``, ``string``) stops the remaining rules
  for that field only: a missing slug reports "required" and nothing else,
  but still lets the title and content rules run.
- ``sometimes`` fields are validated only when the client sent them (used
  for relationships on PATCH, where omission keeps the stored value).
- Relationship rules resolve the referenced row in the same step that checks
  it exists; the rows end up in ``ValidatedPayload.relationships`` so
  services never look them up twice.
- Nothing here writes to the database.
"""
from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.exceptions import FieldError, ValidationFailed
from blog_api.models import Article, User, Category, parse_id
from blog_api.schemas import ResourceObjectIn

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

MISSING = object()


@dataclass
class ValidationContext:
    db: AsyncSession
    ignore_id: int | None = None
    resolved: dict[str, Any] = field(default_factory=dict)


Check = Callable[[Any, ValidationContext, str], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class Rule:
    name: str
    check: Check
    message: str
    bail: bool = False


@dataclass(frozen=True)
class FieldRules:
    field: str
    rules: tuple[Rule, ...]
    sometimes: bool = False

    @property
    def is_relationship(self) -> bool:
        return self.field.startswith("relationships.")

    @property
    def name(self) -> str:
        return self.field.split(".", 1)[1] if self.is_relationship else self.field

    @property
    def label(self) -> str:
        return f"data.{self.field}" if self.is_relationship else f"data.attributes.{self.field}"


@dataclass
class ValidatedPayload:
    attributes: dict[str, Any] = field(default_factory=dict)
    relationships: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Relationship linkage
# ---------------------------------------------------------------------------

def extract_linkage(value: Any) -> tuple[str | None, Any] | None:
    """
    Normalise a relationship value to ``(type, id)``.

    Accepts a JSON:API relationship object (``{"data": {...}}``), a bare
    resource identifier or nested resource object, or a bare id.  Returns
    None when the relationship is empty (absent, null, or null linkage).
    The returned id is None when the payload names no id at all, as with an
    object that was never persisted.
    """
    if value is MISSING or value is None:
        return None
    if isinstance(value, dict):
        if "data" in value:
            return extract_linkage(value["data"])
        return value.get("type"), value.get("id")
    if isinstance(value, (list, tuple)):
        # To-many linkage can never satisfy a to-one relationship.
        return None if not value else (None, None)
    return None, value
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw)
    return None


# ---------------------------------------------------------------------------
# Rule predicates
# ---------------------------------------------------------------------------

def _required(value, ctx, name) -> bool:
    if value is MISSING or value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)) and not value:
        return False
    return True


def _required_relationship(value, ctx, name) -> bool:
    return extract_linkage(value) is not None


def _string(value, ctx, name) -> bool:
    return isinstance(value, str)


def min_length(n: int) -> Check:
    def check(value, ctx, name) -> bool:
        return len(value) >= n

    return check


def _slug_format(value: str, ctx, name) -> bool:
    # The specific dash/underscore rules already report those cases.
    if "_" in value or value.startswith("-") or value.endswith("-"):
        return True
    return SLUG_PATTERN.fullmatch(value) is not None


def _no_underscores(value: str, ctx, name) -> bool:
    return "_" not in value


def _no_starting_dashes(value: str, ctx, name) -> bool:
    return not value.startswith("-")


def _no_ending_dashes(value: str, ctx, name) -> bool:
    return not value.endswith("-")


async def _unique_slug(value: str, ctx: ValidationContext, name) -> bool:
    q = select(Article.id).where(Article.slug == value)
    if ctx.ignore_id is not None:
        q = q.where(Article.id != ctx.ignore_id)
    result = await ctx.db.execute(q.limit(1))
    return result.scalar_one_or_none() is None


def exists(model, resource_types: tuple[str, ...]) -> Check:
    """
    Resolve the relationship to a persisted *model* row.

    Fails when the linkage names a foreign type, carries no usable id, or
    the id matches no row.  On success the row is stored in
    ``ctx.resolved[name]``.
    """

    async def check(value, ctx: ValidationContext, name: str) -> bool:
        linkage = extract_linkage(value)
        if linkage is None:
            return False
        resource_type, raw_id = linkage
        if resource_type is not None and resource_type not in resource_types:
            return False
        pk = parse_id(raw_id)
        if pk is None:
            return False
        row = await ctx.db.get(model, pk)
        if row is None:
            return False
        ctx.resolved[name] = row
        return True

    return check


REQUIRED = Rule("required", _required, "The {attribute} field is required.", bail=True)
REQUIRED_RELATIONSHIP = Rule(
    "required", _required_relationship, "The {attribute} field is required.", bail=True
)
STRING = Rule("string", _string, "The {attribute} must be a string.", bail=True)
SLUG_RULES = (
    Rule(
        "slug",
        _slug_format,
        "The {attribute} must only contain lowercase letters, numbers and dashes.",
    ),
    Rule("no_underscores", _no_underscores, "The {attribute} must not contain underscores."),
    Rule("no_starting_dashes", _no_starting_dashes, "The {attribute} must not start with dashes."),
    Rule("no_ending_dashes", _no_ending_dashes, "The {attribute} must not end with dashes."),
    Rule("unique", _unique_slug, "The {attribute} has already been taken."),
)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

class Validator:
    """Run a fixed rule set against one resource object."""

    def __init__(self, resource_type: str, fields: list[FieldRules]) -> None:
        self.resource_type = resource_type
        self.fields = fields

    def _document_errors(self, resource: ResourceObjectIn, expected_id: int | None) -> list[FieldError]:
        errors: list[FieldError] = []
        if resource.type != self.resource_type:
            errors.append(FieldError("/data/type", "in", "The selected data.type is invalid."))
        if expected_id is not None and resource.id is not None and str(resource.id) != str(expected_id):
            errors.append(
                FieldError("/data/id", "same", "The data.id must match the id of the resource being updated.")
            )
        return errors

    async def _run_field(self, spec: FieldRules, value: Any, ctx: ValidationContext) -> list[FieldError]:
        errors: list[FieldError] = []
        for rule in spec.rules:
            passed = rule.check(value, ctx, spec.name)
            if inspect.isawaitable(passed):
                passed = await passed
            if passed:
                continue
            errors.append(FieldError(spec.field, rule.name, rule.message.format(attribute=spec.label)))
            if rule.bail:
                break
        return errors

    async def validate(
        self,
        db: AsyncSession,
        resource: ResourceObjectIn,
        *,
        ignore_id: int | None = None,
    ) -> ValidatedPayload:
        """
        Validate *resource* and return its normalised attributes and
        resolved relationship rows.

        ``ignore_id`` is the id of the record being updated: it is excluded
        from uniqueness checks and must match ``data.id`` when one is sent.
        Raises ``ValidationFailed`` carrying every failed rule.
        """
        ctx = ValidationContext(db=db, ignore_id=ignore_id)
        errors = self._document_errors(resource, ignore_id)
        payload = ValidatedPayload()

        for spec in self.fields:
            source = resource.relationships if spec.is_relationship else resource.attributes
            value = source.get(spec.name, MISSING)
            if spec.sometimes and value is MISSING:
                continue
            field_errors = await self._run_field(spec, value, ctx)
            errors.extend(field_errors)
            if field_errors:
                continue
            if spec.is_relationship:
                payload.relationships[spec.name] = ctx.resolved[spec.name]
            else:
                payload.attributes[spec.name] = value

        if errors:
            raise ValidationFailed(errors)
        return payload


# ---------------------------------------------------------------------------
# Rule sets
# ---------------------------------------------------------------------------

def _article_fields(*, creating: bool) -> list[FieldRules]:
    return [
        FieldRules("title", (REQUIRED, STRING, Rule("min", min_length(4), "The {attribute} must be at least 4 characters."))),
        FieldRules("slug", (REQUIRED, STRING, *SLUG_RULES)),
        FieldRules("content", (REQUIRED, STRING)),
        FieldRules(
            "relationships.category",
            (
                REQUIRED_RELATIONSHIP,
                Rule("exists", exists(Category, ("categories",)), "The selected {attribute} is invalid."),
            ),
            sometimes=not creating,
        ),
    ]


article_create_validator = Validator("articles", _article_fields(creating=True))
article_update_validator = Validator("articles", _article_fields(creating=False))

comment_create_validator = Validator(
    "comments",
    [
        FieldRules("body", (REQUIRED, STRING)),
        FieldRules(
            "relationships.article",
            (
                REQUIRED_RELATIONSHIP,
                Rule("exists", exists(Article, ("articles",)), "The selected {attribute} is invalid."),
            ),
        ),
        FieldRules(
            "relationships.author",
            (
                REQUIRED_RELATIONSHIP,
                Rule("exists", exists(User, ("authors", "users")), "The selected {attribute} is invalid."),
            ),
        ),
    ],
)
