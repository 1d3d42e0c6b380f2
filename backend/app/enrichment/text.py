"""Text passes: paragraph backfill and typographic sanitation."""

import re

_PARAGRAPH_SPLIT = re.compile(r"\n[ \t]*\n")
_DASHES = re.compile(r"[ \t]*[–—][ \t]*")
_INLINE_SPACE = re.compile(r"[ \t\u00a0]+")
_EXTRA_BREAKS = re.compile(r"\n{3,}")


def split_paragraphs(text: str) -> list[str]:
    """Split text into non-empty blank-line separated blocks."""
    return [block.strip() for block in _PARAGRAPH_SPLIT.split(text) if block.strip()]


def template_paragraphs(city: str, label: str) -> list[str]:
    """Deterministic filler paragraphs in fixed order: transit, hours, food."""
    place = city or "the city"
    part = label or "day"
    return [
        (
            f"Getting around: {place} is easiest to cover on foot and by public transport "
            f"in the {part}. Check the local transit app for live departures before you set off."
        ),
        (
            f"Hours and tickets: confirm {part} opening times on the day and book timed "
            "tickets online where available to skip the longest queues."
        ),
        (
            "Food nearby: plan a break at a local spot close to your last stop so the "
            f"{part} keeps a relaxed pace."
        ),
    ]


def ensure_min_paragraphs(text: str, minimum: int, city: str, label: str) -> str:
    """Append template paragraphs until ``text`` has ``minimum`` blocks.

    Never truncates. At most one copy of each template paragraph is appended.
    """
    paragraphs = split_paragraphs(text)
    if len(paragraphs) >= minimum:
        return text

    for filler in template_paragraphs(city, label):
        if len(paragraphs) >= minimum:
            break
        if filler in paragraphs:
            continue
        paragraphs.append(filler)

    return "\n\n".join(paragraphs)


def sanitize_text(text: str) -> str:
    """Replace em/en dashes with " to " and collapse redundant whitespace.

    Paragraph breaks (blank lines) and single line breaks are preserved.
    """
    if not text:
        return text

    cleaned = _DASHES.sub(" to ", text)
    cleaned = cleaned.replace("\r\n", "\n")
    lines = [_INLINE_SPACE.sub(" ", line).strip() for line in cleaned.split("\n")]
    cleaned = "\n".join(lines)
    cleaned = _EXTRA_BREAKS.sub("\n\n", cleaned)
    return cleaned.strip()
