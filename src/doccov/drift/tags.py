"""
Parsing of documentation tags that make claims about a signature.

Handles the text of @param, @returns and @template tags, plus inline
{@link} style references found anywhere in descriptions and tag text.
"""
from dataclasses import dataclass
from typing import Iterator, Optional

from doccov.models import ExportSymbol, Tag
from doccov.patterns import (
    BRACED_TYPE,
    DOC_FENCED_CODE,
    DOC_INLINE_CODE,
    INLINE_LINK_TAG,
    PARAM_TAG,
    TEMPLATE_BRACED,
)

__all__ = [
    "ParamTag",
    "TemplateTag",
    "normalize_param_name",
    "parse_param_tag",
    "parse_return_type",
    "parse_template_tag",
    "documented_params",
    "iter_inline_links",
]


@dataclass(frozen=True)
class ParamTag:
    """A parsed ``@param {type} [name] - description`` tag."""
    name: str
    type: Optional[str] = None
    optional: bool = False


@dataclass(frozen=True)
class TemplateTag:
    """A parsed ``@template {C} T`` or ``@template T extends C`` tag."""
    name: str
    constraint: Optional[str] = None


def normalize_param_name(raw: Optional[str]) -> Optional[str]:
    """
    Strip optional brackets, a default value and a trailing comma.

    Examples:
        "[count=10]" -> "count"
        "options,"   -> "options"
    """
    if not raw:
        return None
    name = raw.strip()
    if name.startswith("[") and name.endswith("]"):
        name = name[1:-1]
    name = name.split("=", 1)[0]
    if name.endswith(","):
        name = name[:-1]
    return name or None


def parse_param_tag(text: Optional[str]) -> Optional[ParamTag]:
    """Parse @param tag text; None when it names nothing."""
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    match = PARAM_TAG.match(trimmed)
    if not match:
        return None

    doc_type, raw_name = match.group(1), match.group(2)
    name = normalize_param_name(raw_name)
    if not name:
        return None
    return ParamTag(
        name=name,
        type=doc_type.strip() if doc_type else None,
        optional=raw_name.startswith("[") and raw_name.endswith("]"),
    )


def parse_return_type(text: Optional[str]) -> Optional[str]:
    """
    The {type} of a @returns tag.

    Only an explicit braced type counts; the first word of a bare
    description is not treated as a type.
    """
    match = BRACED_TYPE.match((text or "").strip())
    return match.group(1).strip() if match else None


def parse_template_tag(text: Optional[str]) -> Optional[TemplateTag]:
    """Parse @template tag text into a name and optional constraint."""
    remaining = (text or "").strip()
    if not remaining:
        return None

    constraint = None
    braced = TEMPLATE_BRACED.match(remaining)
    if braced:
        constraint = braced.group(1).strip()
        remaining = braced.group(2).strip()

    parts = remaining.split()
    if not parts:
        return None
    name = parts[0].rstrip(".,;:")

    if constraint is None and len(parts) > 1 and parts[1] == "extends":
        tokens = []
        for token in parts[2:]:
            if token in ("-", "–"):
                break
            tokens.append(token)
        constraint = " ".join(tokens).strip()

    return TemplateTag(name=name, constraint=constraint or None)


def documented_params(tags: tuple[Tag, ...]) -> list[ParamTag]:
    """Parsed @param tags in tag order, skipping unparseable ones."""
    params = []
    for tag in tags:
        if tag.name == "param" and tag.text:
            parsed = parse_param_tag(tag.text)
            if parsed is not None:
                params.append(parsed)
    return params


def iter_inline_links(export: ExportSymbol) -> Iterator[tuple[str, str]]:
    """
    Yield (tag kind, target) for every inline link in an export's docs.

    Example tags are skipped, as is anything inside fenced or inline code.
    """
    text = " ".join(
        [export.description or ""]
        + [t.text for t in export.tags if t.name != "example"]
    )
    text = DOC_FENCED_CODE.sub("", text)
    text = DOC_INLINE_CODE.sub("", text)
    for match in INLINE_LINK_TAG.finditer(text):
        yield match.group(1), match.group(2)
