"""Text and link builders handed to external collaborators."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .lessons import DEFAULT_BASE_URL, LessonRecord

AUTOMATION_QUERY_PARAM = "study_lesson"

STUDY_PROMPT_TEMPLATE = """I'm studying a music theory lesson titled "{title}" ({url}).

Please explain this topic clearly for a guitarist at an intermediate level.
1) Start with a one-paragraph overview.
2) Give the definitions and the minimal rules.
3) Show 2-3 practical fretboard examples in C and G (ASCII tab okay).
4) Common mistakes & quick checks.
5) One drill I can do in 5 minutes.

If helpful, relate it to earlier topics (intervals → scales → diatonic triads → sevenths → modes)."""


def build_study_prompt(lesson: LessonRecord) -> str:
    """Render the tutoring prompt a learner pastes into an assistant chat."""
    return STUDY_PROMPT_TEMPLATE.format(title=lesson.title, url=lesson.url or "no link")


def automation_reference(lesson: LessonRecord, *, base_url: str = DEFAULT_BASE_URL) -> str:
    """Lesson link carrying the title as a query parameter for the page-automation snippet.

    Any existing query parameters and fragment are kept; a previous
    ``study_lesson`` value is replaced.
    """
    parts = urlsplit(lesson.url or base_url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != AUTOMATION_QUERY_PARAM]
    query.append((AUTOMATION_QUERY_PARAM, lesson.title))
    return urlunsplit(parts._replace(query=urlencode(query)))


__all__ = [
    "AUTOMATION_QUERY_PARAM",
    "STUDY_PROMPT_TEMPLATE",
    "automation_reference",
    "build_study_prompt",
]
