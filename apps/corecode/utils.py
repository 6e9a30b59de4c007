"""
Level ladder, promotion policy settings and find-or-create helpers for
classes and terms.

The resolvers lean on the unique constraints of ``AcademicTerm`` and
``StudentClass``: ``get_or_create`` re-fetches the row when a concurrent
caller wins the insert, so calling them twice for the same key always
returns the same record. A soft-deleted row holding the key is restored
rather than duplicated.
"""
import calendar
import logging
from datetime import date, timedelta

from django.conf import settings
from django.utils.translation import gettext_lazy as _

from .models import AcademicTerm, Level, StudentClass

logger = logging.getLogger(__name__)


PROMOTION_DEFAULTS = {
    "TERMS_PER_YEAR": 3,
    "DEFAULT_PASSING_THRESHOLD": 50,
    "FIRST_TERM_START": (9, 1),
    "FIRST_TERM_END": (12, 15),
    "NEXT_TERM_LENGTH_MONTHS": 3,
    "LOCK_TIMEOUT": 30 * 60,
}

LEVEL_ORDER = [Level.L3, Level.L4, Level.L5]
NEXT_LEVEL = dict(zip(LEVEL_ORDER, LEVEL_ORDER[1:]))


class UnknownLevelError(ValueError):
    """Raised for a level value that is not on the ladder"""


class ClassCapacityError(Exception):
    """Raised when a class cannot take another active enrollment"""


class NoNextTermError(Exception):
    """Raised when the academic year has no term after the given one"""


def promotion_setting(name):
    """Read one promotion policy value, falling back to the built-in default"""
    return getattr(settings, "PROMOTION", {}).get(name, PROMOTION_DEFAULTS[name])


# ==================== LEVEL LADDER ====================

def next_level(level):
    """
    Return the level after ``level``, or None at the top of the ladder.
    Unknown values are rejected rather than treated as the top of the ladder.

    Raises: UnknownLevelError if ``level`` is not a known level
    """
    try:
        level = Level(level)
    except ValueError:
        raise UnknownLevelError(
            _("Unknown class level: %(level)s") % {"level": level}
        )
    return NEXT_LEVEL.get(level)


def _restore(row):
    """Bring back a soft-deleted class or term whose key is needed again"""
    if row.is_deleted:
        row.is_deleted = False
        row.save(update_fields=["is_deleted"])
        logger.warning("Restored deleted %s %s", row._meta.model_name, row.pk)
    return row


# ==================== TERMS ====================

def add_months(value, months):
    """Shift a date by whole months, clamping the day to the target month"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def first_term_dates(academic_year):
    start_month, start_day = promotion_setting("FIRST_TERM_START")
    end_month, end_day = promotion_setting("FIRST_TERM_END")
    return (
        date(academic_year, start_month, start_day),
        date(academic_year, end_month, end_day),
    )


def get_first_term(school, academic_year):
    """Find or create term 1 of ``academic_year`` for ``school``"""
    start_date, end_date = first_term_dates(academic_year)
    term, created = AcademicTerm.objects.get_or_create(
        school=school,
        academic_year=academic_year,
        term_number=1,
        defaults={"start_date": start_date, "end_date": end_date},
    )
    if created:
        logger.info("Created term 1 of %s for school %s", academic_year, school.pk)
    return _restore(term)


def get_next_term(current_term):
    """
    Find or create the term following ``current_term`` in the same year.

    A created term starts the day after ``current_term`` ends.

    Raises: NoNextTermError if ``current_term`` is the last term of the year
    """
    next_number = current_term.term_number + 1
    if next_number > promotion_setting("TERMS_PER_YEAR"):
        raise NoNextTermError(_("No next term available in the same academic year"))

    start_date = current_term.end_date + timedelta(days=1)
    end_date = add_months(start_date, promotion_setting("NEXT_TERM_LENGTH_MONTHS"))

    term, created = AcademicTerm.objects.get_or_create(
        school=current_term.school,
        academic_year=current_term.academic_year,
        term_number=next_number,
        defaults={"start_date": start_date, "end_date": end_date},
    )
    if created:
        logger.info(
            "Created term %s of %s for school %s",
            next_number,
            current_term.academic_year,
            current_term.school_id,
        )
    return _restore(term)


def count_academic_terms(school, academic_year):
    return AcademicTerm.objects.filter(
        school=school,
        academic_year=academic_year,
        is_deleted=False,
    ).count()


# ==================== CLASSES ====================

def get_next_class(current_class, level, academic_year):
    """
    Find or create the class of ``current_class``'s school and trade at
    ``level`` for ``academic_year``. A created class copies the capacity of
    ``current_class``.
    """
    next_class, created = StudentClass.objects.get_or_create(
        school=current_class.school,
        trade=current_class.trade,
        level=level,
        year=academic_year,
        defaults={"capacity": current_class.capacity},
    )
    if created:
        logger.info(
            "Created class %s for %s (school %s)",
            next_class.name,
            academic_year,
            current_class.school_id,
        )
    return _restore(next_class)


def ensure_class_capacity(student_class, term):
    """
    Raises: ClassCapacityError if ``student_class`` is full for ``term``
    """
    enrolled = student_class.enrollments.filter(
        term=term,
        is_active=True,
        is_deleted=False,
    ).count()
    if enrolled >= student_class.capacity:
        raise ClassCapacityError(
            _("Class %(name)s for %(year)s is at capacity") % {
                "name": student_class.name,
                "year": student_class.year,
            }
        )
