"""
Keyword and title cleanup for microstock submissions.

Model output tends to repeat the same idea several times ("chat", "conversation",
"talk bubble"). Marketplaces only accept a limited number of keywords, so this
module strips punctuation and drops keywords that overlap with ones already kept.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .logging_setup import get_logger

logger = get_logger(__name__)

MAX_KEYWORDS = 50

# Anything that is not a letter, digit or whitespace; \w also matches underscore
_PUNCTUATION_RE = re.compile(r'[^\w\s]|_')

DEFAULT_SYNONYM_GROUPS: Tuple[Tuple[str, ...], ...] = (
    ('bubble', 'bubbles', 'balloon', 'balloons'),
    ('dialogue', 'conversation', 'chat', 'talk', 'speaking', 'discussion', 'communication', 'comment'),
    ('message', 'messages', 'text', 'content'),
    ('graphic', 'graphics', 'design', 'artwork', 'illustration', 'visual', 'creative', 'art'),
    ('element', 'elements', 'component', 'components'),
    ('icon', 'icons', 'symbol', 'symbols', 'sign', 'signs'),
    ('box', 'boxes', 'container', 'containers'),
    ('template', 'templates', 'layout', 'layouts'),
    ('website', 'websites', 'web', 'site', 'sites'),
    ('shape', 'shapes', 'form', 'forms'),
    ('post', 'posts', 'posting', 'share'),
    ('presentation', 'presentations', 'slide', 'slides'),
    ('business', 'corporate', 'professional', 'commercial', 'enterprise', 'company'),
    ('modern', 'contemporary', 'current', 'new', 'fresh', 'trendy', 'stylish'),
    ('colorful', 'vibrant', 'bright', 'vivid', 'color', 'colour'),
    ('app', 'application', 'software', 'program', 'digital', 'online', 'internet'),
    ('social', 'media', 'network', 'networking'),
    ('marketing', 'branding', 'advertising', 'promotion'),
    ('banner', 'signage', 'poster', 'board'),
    ('interface', 'ui', 'ux', 'user'),
    ('vector', 'scalable', 'resolution'),
    ('flat', 'simple', 'minimal', 'clean'),
    ('abstract', 'geometric', 'pattern', 'texture'),
    ('background', 'backdrop', 'surface', 'base'),
    ('big', 'large', 'huge', 'small', 'tiny', 'mini', 'massive', 'enormous'),
    ('excellent', 'outstanding', 'premium', 'superior', 'top', 'best', 'perfect'),
    ('happy', 'joyful', 'cheerful', 'glad', 'pleased', 'excited'),
    ('create', 'make', 'build', 'produce', 'generate', 'develop'),
    ('style', 'styling', 'fashionable', 'trend'),
    ('beautiful', 'gorgeous', 'stunning', 'attractive', 'pretty'),
    ('fast', 'quick', 'rapid', 'speed'),
)


@dataclass(frozen=True)
class SynonymTaxonomy:
    """Ordered table of synonym groups. Each group holds lowercase terms treated as interchangeable."""
    groups: Tuple[Tuple[str, ...], ...] = DEFAULT_SYNONYM_GROUPS

    @classmethod
    def from_lists(cls, groups: Iterable[Iterable[str]]) -> 'SynonymTaxonomy':
        """
        Build a taxonomy from plain lists, e.g. as loaded from a JSON config.

        Args:
            groups: Iterable of synonym groups

        Returns:
            SynonymTaxonomy with lowercased, non-empty terms

        Raises:
            ValueError: If a group is a bare string instead of a list of terms
        """
        normalized = []
        for group in groups:
            if isinstance(group, str):
                raise ValueError(f"Synonym group must be a list of terms, got string {group!r}")
            terms = tuple(term.strip().lower() for term in group if term and term.strip())
            if terms:
                normalized.append(terms)
        return cls(groups=tuple(normalized))

    def matching_groups(self, keyword_lower: str) -> List[int]:
        """Indexes of every group with a term that contains, or is contained in, the keyword."""
        return [
            index for index, group in enumerate(self.groups)
            if any(term in keyword_lower or keyword_lower in term for term in group)
        ]


DEFAULT_TAXONOMY = SynonymTaxonomy()


def clean_text(text: str) -> str:
    """
    Remove every character that is not a letter, digit or whitespace.

    Internal whitespace is left as is; only the ends are trimmed.

    Args:
        text: Raw title or keyword

    Returns:
        Cleaned string, possibly empty
    """
    if not text:
        return ""
    return _PUNCTUATION_RE.sub('', text).strip()


def _overlaps(keyword_lower: str, existing_lower: str) -> bool:
    """True if two keywords are equal, nested, or differ only by a trailing 's'."""
    return (
        existing_lower == keyword_lower
        or keyword_lower in existing_lower
        or existing_lower in keyword_lower
        or existing_lower + 's' == keyword_lower
        or keyword_lower + 's' == existing_lower
    )


def dedupe_keywords(
    keywords: Sequence[str],
    taxonomy: SynonymTaxonomy = DEFAULT_TAXONOMY,
    max_keywords: int = MAX_KEYWORDS,
) -> List[str]:
    """
    Reduce a keyword list to commercially distinct terms.

    Keywords are visited in order and the first one to claim a synonym group
    wins; later keywords that touch a claimed group are dropped. Survivors are
    also dropped when they overlap a kept keyword by substring or plural form.

    Args:
        keywords: Cleaned, non-empty keywords in priority order
        taxonomy: Synonym groups to check against
        max_keywords: Maximum number of keywords to return

    Returns:
        Filtered keywords in their original order
    """
    filtered: List[str] = []
    filtered_lower: List[str] = []
    used_groups: Set[int] = set()

    for keyword in keywords:
        keyword_lower = keyword.lower()

        matched = taxonomy.matching_groups(keyword_lower)
        if any(index in used_groups for index in matched):
            continue
        used_groups.update(matched)

        if any(_overlaps(keyword_lower, existing) for existing in filtered_lower):
            continue

        filtered.append(keyword)
        filtered_lower.append(keyword_lower)

    if len(filtered) > max_keywords:
        logger.debug(f"Truncating {len(filtered)} keywords to {max_keywords}")
    return filtered[:max_keywords]


class KeywordNormalizer:
    """Binds a synonym taxonomy and keyword cap for use by the response parser."""

    def __init__(self, taxonomy: Optional[SynonymTaxonomy] = None, max_keywords: int = MAX_KEYWORDS):
        if max_keywords < 1:
            raise ValueError(f"max_keywords must be at least 1, got {max_keywords}")
        self.taxonomy = taxonomy or DEFAULT_TAXONOMY
        self.max_keywords = max_keywords

    @classmethod
    def from_config(cls, config) -> 'KeywordNormalizer':
        """
        Create a normalizer from application configuration.

        Args:
            config: Application configuration

        Returns:
            KeywordNormalizer using the configured groups, or the built-in table if none are set
        """
        groups = getattr(config, 'synonym_groups', None)
        taxonomy = SynonymTaxonomy.from_lists(groups) if groups else DEFAULT_TAXONOMY
        return cls(taxonomy, getattr(config, 'max_keywords', MAX_KEYWORDS))

    def clean_text(self, text: str) -> str:
        return clean_text(text)

    def clean_keywords(self, raw_keywords: Iterable[str]) -> List[str]:
        """Clean each keyword and drop the ones left empty."""
        cleaned = (clean_text(keyword) for keyword in raw_keywords)
        return [keyword for keyword in cleaned if keyword]

    def dedupe_keywords(self, keywords: Sequence[str]) -> List[str]:
        return dedupe_keywords(keywords, self.taxonomy, self.max_keywords)
