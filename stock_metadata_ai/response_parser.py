"""
Parsing of the line-based metadata format returned by the model.

Expected input looks like:

    TITLE- Gold Anniversary Badges Vector Set
    ALT_TITLE_1- ...
    ALT_TITLE_2- ...
    DESCRIPTION- ...
    CATEGORY- Graphic Resources
    KEYWORDS- badge, anniversary, gold, ...

Each prefix may also be followed by ':' instead of '-'.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .keyword_normalizer import KeywordNormalizer, clean_text
from .logging_setup import get_logger

logger = get_logger(__name__)

_FIELD_RE = re.compile(r'^\s*(TITLE|ALT_TITLE_1|ALT_TITLE_2|DESCRIPTION|CATEGORY|KEYWORDS)[-:]\s*(.*)$')


@dataclass(frozen=True)
class MetadataResult:
    """Metadata generated for one image."""
    title: str = ""
    alternative_titles: Tuple[str, ...] = field(default_factory=tuple)
    description: str = ""
    category: str = ""
    keywords: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a JSON-serializable dictionary."""
        return {
            'title': self.title,
            'alternative_titles': list(self.alternative_titles),
            'description': self.description,
            'category': self.category,
            'keywords': list(self.keywords),
        }


def parse_response(raw_text: str, normalizer: Optional[KeywordNormalizer] = None) -> MetadataResult:
    """
    Parse the model's text response into a MetadataResult.

    Unrecognized lines are ignored and missing fields are left empty, so this
    never fails on well-typed input.

    Args:
        raw_text: Text returned by the inference API
        normalizer: Keyword normalizer to apply (defaults to the built-in taxonomy)

    Returns:
        Parsed MetadataResult
    """
    normalizer = normalizer or KeywordNormalizer()

    title = ""
    alt_titles = ["", ""]
    description = ""
    category = ""
    keywords = []

    for line in (raw_text or "").splitlines():
        match = _FIELD_RE.match(line)
        if not match:
            continue

        name, value = match.group(1), match.group(2).strip()

        if name == 'TITLE':
            title = clean_text(value)
        elif name == 'ALT_TITLE_1':
            alt_titles[0] = clean_text(value)
        elif name == 'ALT_TITLE_2':
            alt_titles[1] = clean_text(value)
        elif name == 'DESCRIPTION':
            description = value
        elif name == 'CATEGORY':
            category = value
        elif name == 'KEYWORDS':
            raw_keywords = [token.strip() for token in value.split(',')]
            raw_keywords = [token for token in raw_keywords if token]
            cleaned = normalizer.clean_keywords(raw_keywords)
            keywords = normalizer.dedupe_keywords(cleaned)
            logger.debug(f"Kept {len(keywords)} of {len(raw_keywords)} keywords after deduplication")

    if not title and not keywords:
        logger.warning("Response contained no TITLE or KEYWORDS line")

    return MetadataResult(
        title=title,
        alternative_titles=tuple(t for t in alt_titles if t),
        description=description,
        category=category,
        keywords=tuple(keywords),
    )
