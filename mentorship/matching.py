import logging
import re
from typing import NamedTuple

from django.db.models import Avg, Count

from .models import User

logger = logging.getLogger(__name__)

STOP_WORDS = {
    'how', 'what', 'when', 'where', 'why', 'who', 'which', 'the', 'a', 'an', 'and', 'or',
    'for', 'to', 'in', 'on', 'at', 'is', 'are', 'was', 'were', 'be', 'been', 'being',
    'do', 'does', 'did', 'will', 'can', 'should', 'with', 'this', 'that', 'from', 'have',
    'has', 'had', 'about', 'into', 'your', 'you', 'my', 'me', 'i', 'am', 'not', 'but',
    'kaise', 'kya', 'kab', 'kahan', 'kyun',
}
MAX_KEYWORDS = 15

EXPERTISE_POINTS = 5
BIO_POINTS = 2
RATING_POINTS = 3

FALLBACK_MATCH_PERCENTAGE = 50
FALLBACK_REASON = 'Top-rated mentor'


class MentorMatch(NamedTuple):
    mentor: User
    score: float
    match_percentage: int
    reason: str
    matched_keywords: list


def extract_keywords(text):
    if not text:
        return []
    words = re.sub(r'[^\w\s]', ' ', text.lower()).split()
    keywords = []
    for word in words:
        if len(word) > 2 and word not in STOP_WORDS and word not in keywords:
            keywords.append(word)
    return keywords[:MAX_KEYWORDS]


def _candidates(exclude_user=None):
    mentors = User.objects.filter(role=User.MENTOR, is_active=True).annotate(
        rating_average=Avg('ratings_received__rating'),
        rating_count=Count('ratings_received'),
    )
    if exclude_user is not None:
        mentors = mentors.exclude(pk=exclude_user.pk)
    return mentors


def score_mentor(mentor, keywords):
    """Returns (score, matched keywords, reasons) for one mentor."""
    score = 0.0
    matched = []
    reasons = []
    expertise = [str(item).lower() for item in (mentor.expertise or [])]
    bio = (mentor.bio or '').lower()

    for entry in expertise:
        for keyword in keywords:
            if keyword in entry:
                score += EXPERTISE_POINTS
                reasons.append(f"Expertise: {entry}")
                if keyword not in matched:
                    matched.append(keyword)

    for keyword in keywords:
        if keyword in bio:
            score += BIO_POINTS
            reasons.append(f"Bio mentions: {keyword}")
            if keyword not in matched:
                matched.append(keyword)

    average = getattr(mentor, 'rating_average', None)
    if average:
        score += (average / 5) * RATING_POINTS
        reasons.append(f"Rating: {average:.1f}/5")

    return score, matched, reasons


def match_percentage(matched_keywords, keywords):
    if not keywords:
        return FALLBACK_MATCH_PERCENTAGE
    considered = min(len(keywords), 5)
    percentage = round(100 * len(matched_keywords) / considered)
    return max(1, min(100, percentage))


def rank_mentors(keywords, exclude_user=None, limit=None):
    """Mentors matching at least one keyword, best first."""
    ranked = []
    for mentor in _candidates(exclude_user):
        score, matched, reasons = score_mentor(mentor, keywords)
        if not matched:
            continue
        ranked.append(MentorMatch(
            mentor=mentor,
            score=round(score, 2),
            match_percentage=match_percentage(matched, keywords),
            reason=', '.join(reasons),
            matched_keywords=matched,
        ))
    ranked.sort(key=lambda match: (-match.score, match.mentor.active_questions, match.mentor.id))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def find_best_mentor(keywords, exclude_user=None):
    ranked = rank_mentors(keywords, exclude_user=exclude_user, limit=1)
    if ranked:
        best = ranked[0]
        logger.info(f"Best mentor {best.mentor.id} (score {best.score}) for keywords {keywords}")
        return best

    fallback = sorted(
        _candidates(exclude_user),
        key=lambda mentor: (-(mentor.rating_average or 0), mentor.active_questions, mentor.id),
    )
    if fallback:
        mentor = fallback[0]
        logger.info(f"No keyword match for {keywords}, falling back to mentor {mentor.id}")
        return MentorMatch(
            mentor=mentor,
            score=1,
            match_percentage=FALLBACK_MATCH_PERCENTAGE,
            reason=FALLBACK_REASON,
            matched_keywords=[],
        )

    logger.warning("No mentors available for matching")
    return None
