"""
Request validation error formatting.

Pydantic reports every failing field at once; this turns those reports into
the `[{field, message}]` pairs returned to clients with HTTP 400.
"""
from typing import Any, Iterable

# Request sections FastAPI prefixes to error locations
LOCATION_PREFIXES = {"body", "query", "path", "header", "form"}

FIELD_LABELS = {
    "name": "Category name",
    "isPublished": "Published flag",
    "featuredImage": "Featured image",
}

PATTERN_MESSAGES = {
    "color": "Color must be a valid hex color (e.g., #667eea or #f0f)",
    "slug": "Slug may only contain lowercase letters, numbers and hyphens",
}


def field_path(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts)


def field_label(field: str) -> str:
    name = field.split(".")[-1] if field else "Body"
    if name in FIELD_LABELS:
        return FIELD_LABELS[name]
    return name[:1].upper() + name[1:]


def error_message(error: dict) -> str:
    field = field_path(error.get("loc", ()))
    label = field_label(field)
    ctx = error.get("ctx") or {}
    kind = error.get("type", "")

    if kind == "missing":
        return f"{label} is required"
    if kind == "string_too_short":
        if ctx.get("min_length") == 1:
            return f"{label} cannot be empty"
        return f"{label} must be at least {ctx.get('min_length')} characters"
    if kind == "string_too_long":
        return f"{label} cannot exceed {ctx.get('max_length')} characters"
    if kind == "string_pattern_mismatch":
        return PATTERN_MESSAGES.get(field.split(".")[-1], f"{label} has an invalid format")
    if kind == "value_error":
        return str(ctx.get("error") or error.get("msg", "")).removeprefix("Value error, ")
    return f"{label}: {error.get('msg', 'is invalid')}"


def format_validation_errors(errors: Iterable[dict]) -> list[dict]:
    """
    Convert pydantic error dicts into client-facing field errors.

    Every failure is kept (not just the first) so a form can highlight all
    offending inputs in one round-trip.
    """
    return [
        {"field": field_path(error.get("loc", ())), "message": error_message(error)}
        for error in errors
    ]
