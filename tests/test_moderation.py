import pytest

from mentorship.moderation import (
    ContentModerator, EXCESSIVE_CAPS, INAPPROPRIATE_LANGUAGE, MASK_GLYPH, SPAM, TOO_LONG,
    get_moderator, is_appropriate_content, mask_profanity, normalize
)


@pytest.fixture
def moderator():
    return ContentModerator()


def test_plain_text_is_appropriate(moderator):
    assert moderator.is_appropriate_content("Hello, how did you prepare for CAT?") == (True, None)


def test_empty_text_is_appropriate(moderator):
    assert moderator.is_appropriate_content("").is_appropriate
    assert moderator.is_appropriate_content(None).is_appropriate


def test_words_containing_a_mild_term_are_not_flagged(moderator):
    assert moderator.clean("Hello there, say hello to the class") == "Hello there, say hello to the class"
    assert not moderator.contains_profanity("Scunthorpe is a town")


@pytest.mark.parametrize("text", [
    "this is fuck",
    "what the f.u.c.k",
    "you are a b1tch",
    "sh!t happens",
    "FUCK this",
])
def test_blocked_terms_are_rejected(moderator, text):
    result = moderator.is_appropriate_content(text)
    assert not result.is_appropriate
    assert result.reason == INAPPROPRIATE_LANGUAGE


@pytest.mark.parametrize("text", [
    "Let's hit the books tonight",
    "his hit rate on mocks is great",
    "bring a ss bottle to the exam",
])
def test_blocked_term_does_not_span_words(moderator, text):
    assert moderator.is_appropriate_content(text).is_appropriate
    assert moderator.mask_profanity(text) == text


def test_excessive_capitalization_is_flagged(moderator):
    result = moderator.is_appropriate_content("THIS IS ALL CAPS TEXT")
    assert result == (False, EXCESSIVE_CAPS)


def test_short_uppercase_text_is_allowed(moderator):
    assert moderator.is_appropriate_content("OK THANKS").is_appropriate


def test_repeated_characters_are_spam(moderator):
    assert moderator.is_appropriate_content("hiiiiiii there") == (False, SPAM)


def test_overlong_text_is_rejected():
    moderator = ContentModerator(max_length=20)
    assert moderator.is_appropriate_content("a reasonable sentence that is long") == (False, TOO_LONG)


def test_clean_masks_only_the_offending_span(moderator):
    assert moderator.clean("what the hell is this") == f"what the {MASK_GLYPH * 2} is this"


def test_clean_masks_leetspeak_spans_in_the_original_text(moderator):
    assert moderator.clean("oh h3ll no") == f"oh {MASK_GLYPH * 2} no"


def test_mask_profanity_covers_both_tiers(moderator):
    masked = moderator.mask_profanity("damn, this shit again")
    assert masked == f"{MASK_GLYPH * 2}, this {MASK_GLYPH * 2} again"


def test_normalize_keeps_length():
    text = "Pr0 T1p$ @ 5chool!"
    assert len(normalize(text)) == len(text)
    assert normalize(text) == "pro tips a schooli"


def test_extra_blocked_terms_come_from_settings(settings):
    settings.MODERATION_EXTRA_BLOCKED_TERMS = ("scammer",)
    get_moderator.cache_clear()
    try:
        assert is_appropriate_content("you scammer") == (False, INAPPROPRIATE_LANGUAGE)
    finally:
        get_moderator.cache_clear()


def test_module_level_helpers_use_the_shared_moderator():
    assert mask_profanity("crap") == MASK_GLYPH * 2
    assert is_appropriate_content("Hello").is_appropriate
