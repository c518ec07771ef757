"""Text helpers shared by the pipeline and the executor."""

import math
import re
import unicodedata

WORDS_PER_MINUTE = 238


def slugify(value: str, max_length: int = 80) -> str:
    """Lowercase ASCII slug: "How to Invoice Clients?" -> "how-to-invoice-clients"."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rsplit("-", 1)[0] or slug[:max_length]
    return slug or "post"


def count_words(text: str) -> int:
    return len(text.split())


def reading_time_minutes(word_count: int) -> int:
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def first_heading(markdown_text: str) -> str | None:
    """Return the first `# ` heading of a markdown document, if any."""
    for line in markdown_text.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped[2:].strip()
    return None
