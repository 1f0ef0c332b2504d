"""
Content moderation shared by the REST middleware, the chat gateway,
the community chat and the question flow.

Two tiers of terms:

* ``BLOCKED_TERMS`` reject the whole text.
* ``MASKED_TERMS`` are mild; they are replaced by a blocking glyph and the
  text is kept.

Matching runs on a normalized copy of the text (lowercase, leetspeak folded)
that has exactly one character per input character, so a span found there is
also the span to mask in the original.
"""
import logging
import math
import re
from functools import lru_cache
from typing import NamedTuple

from django.conf import settings

logger = logging.getLogger(__name__)

WORD_LIST_VERSION = '2025.1'

BLOCKED_TERMS = (
    # english
    'fuck', 'fucks', 'fucked', 'fucker', 'fuckers', 'fucking', 'motherfucker', 'fck', 'fuk', 'phuck',
    'shit', 'shitty', 'bullshit',
    'bitch', 'bitches', 'bastard', 'asshole', 'cunt', 'dick', 'dickhead', 'cock', 'pussy',
    'slut', 'whore', 'porn', 'pornography',
    'nigger', 'nigga', 'chink', 'spic', 'faggot', 'retard',
    # hindi / hinglish
    'chutiya', 'chutia', 'madarchod', 'behenchod', 'bhenchod', 'bhosdike', 'bhosdi', 'gaandu', 'randi',
    'harami', 'maa ki chut', 'teri maa ki',
)

MASKED_TERMS = (
    'damn', 'hell', 'crap', 'wtf', 'stfu', 'ass', 'piss', 'bloody', 'hoe',
)

LEET_MAP = {
    '0': 'o',
    '1': 'i',
    '3': 'e',
    '4': 'a',
    '5': 's',
    '7': 't',
    '@': 'a',
    '$': 's',
    '!': 'i',
}

# one optional separator between letters: "f.u.c.k", "b*tch" style; never whitespace, so a
# term cannot straddle two words
SEPARATOR = r'[.\-_*]?'

MASK_GLYPH = '🚫'

REPEATED_CHARACTER = re.compile(r'(.)\1{4,}', re.DOTALL)

TOO_LONG = 'Message is too long'
INAPPROPRIATE_LANGUAGE = 'Message contains inappropriate language'
SPAM = 'Message appears to be spam'
EXCESSIVE_CAPS = 'Please avoid excessive capitalization'

REJECTION_MESSAGE = (
    'Your message contains inappropriate content. '
    'Please maintain a respectful communication environment.'
)


class ModerationResult(NamedTuple):
    is_appropriate: bool
    reason: str = None


def normalize(text):
    """Lowercase and fold leetspeak, keeping the length unchanged."""
    out = []
    for char in text:
        lowered = char.lower()
        if len(lowered) != 1:
            lowered = char
        out.append(LEET_MAP.get(lowered, lowered))
    return ''.join(out)


def _term_pattern(term):
    parts = []
    for char in term:
        if char == ' ':
            parts.append(r'\s+')
        else:
            parts.append(re.escape(char) + SEPARATOR)
    pattern = ''.join(parts)
    if pattern.endswith(SEPARATOR):
        pattern = pattern[:-len(SEPARATOR)]
    return pattern


def _compile(terms):
    if not terms:
        return None
    alternatives = '|'.join(_term_pattern(term) for term in sorted(set(terms), key=len, reverse=True))
    return re.compile(rf'(?<![a-z])(?:{alternatives})(?![a-z])')


class ContentModerator:
    def __init__(self, blocked_terms=BLOCKED_TERMS, masked_terms=MASKED_TERMS,
                 version=WORD_LIST_VERSION, max_length=10000):
        self.version = version
        self.max_length = max_length
        self.blocked_terms = tuple(term.lower().strip() for term in blocked_terms if term.strip())
        self.masked_terms = tuple(term.lower().strip() for term in masked_terms if term.strip())
        self._blocked = _compile(self.blocked_terms)
        self._masked = _compile(self.masked_terms)

    def __repr__(self):
        return f"<ContentModerator version={self.version} blocked={len(self.blocked_terms)} masked={len(self.masked_terms)}>"

    def _spans(self, pattern, text):
        if pattern is None or not text:
            return []
        return [match.span() for match in pattern.finditer(normalize(text))]

    def contains_profanity(self, text):
        return bool(self._spans(self._blocked, text))

    def is_appropriate_content(self, text):
        if not text or not isinstance(text, str):
            return ModerationResult(True)

        if len(text) > self.max_length:
            return ModerationResult(False, TOO_LONG)

        if self.contains_profanity(text):
            return ModerationResult(False, INAPPROPRIATE_LANGUAGE)

        if REPEATED_CHARACTER.search(text):
            return ModerationResult(False, SPAM)

        uppercase = sum(1 for char in text if 'A' <= char <= 'Z')
        if len(text) > 10 and uppercase / len(text) > 0.7:
            return ModerationResult(False, EXCESSIVE_CAPS)

        return ModerationResult(True)

    def _mask(self, text, spans):
        if not spans:
            return text
        pieces = []
        cursor = 0
        for start, end in sorted(spans):
            if start < cursor:
                continue
            pieces.append(text[cursor:start])
            pieces.append(MASK_GLYPH * math.ceil((end - start) / 2))
            cursor = end
        pieces.append(text[cursor:])
        return ''.join(pieces)

    def clean(self, text):
        """Mask the mild terms only."""
        if not text or not isinstance(text, str):
            return text
        return self._mask(text, self._spans(self._masked, text))

    def mask_profanity(self, text):
        """Mask every listed term, blocked or mild."""
        if not text or not isinstance(text, str):
            return text
        spans = self._spans(self._blocked, text) + self._spans(self._masked, text)
        return self._mask(text, spans)


@lru_cache(maxsize=1)
def get_moderator():
    extra = tuple(getattr(settings, 'MODERATION_EXTRA_BLOCKED_TERMS', ()) or ())
    moderator = ContentModerator(
        blocked_terms=BLOCKED_TERMS + extra,
        max_length=getattr(settings, 'MODERATION_MAX_LENGTH', 10000),
    )
    logger.info(f"Content moderator loaded: {moderator!r}")
    return moderator


def is_appropriate_content(text):
    return get_moderator().is_appropriate_content(text)


def mask_profanity(text):
    return get_moderator().mask_profanity(text)
