"""
Shared validation functions for Pydantic schemas.

Used by the content schemas and by the tag service, which normalizes names
again so direct service callers get the same behaviour as HTTP callers.
"""

MAX_TAG_LENGTH = 100


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Args:
        tag: The tag string to validate.

    Returns:
        The trimmed tag. Case is preserved; tag names match exactly.

    Raises:
        ValueError: If tag is empty or too long.
    """
    normalized = tag.strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    if len(normalized) > MAX_TAG_LENGTH:
        raise ValueError(f"Tag name exceeds {MAX_TAG_LENGTH} characters: '{normalized[:20]}...'")
    return normalized


def validate_and_normalize_tags(tags: list[str], *, skip_empty: bool = True) -> list[str]:
    """
    Normalize and validate a list of tags.

    Args:
        tags: List of tag strings to validate.
        skip_empty: Drop blank names silently. When False a blank name
            raises ValueError.

    Returns:
        List of trimmed tags, with duplicates removed (preserving first
        occurrence order).

    Raises:
        ValueError: If any tag is too long, or blank while skip_empty is False.
    """
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        trimmed = tag.strip()
        if not trimmed and skip_empty:
            continue
        validated = validate_and_normalize_tag(trimmed)
        if validated not in seen:
            seen.add(validated)
            normalized.append(validated)
    return normalized


def check_title_not_empty(title: str | None) -> str | None:
    """Reject a blank title; None passes through for partial updates."""
    if title is not None and not title.strip():
        raise ValueError("Title cannot be empty")
    return title
