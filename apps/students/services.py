"""
Promotion services: year-end promotion, term transition and single-student
promotion.

Every enrollment is processed in its own transaction. A failure rolls back
that enrollment's writes only and is reported in the returned outcome list;
enrollments already handled in the same run stay handled.
"""
import logging
from contextlib import contextmanager

from django.core.cache import cache
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.corecode.models import AcademicTerm, School, StudentClass
from apps.corecode.utils import (
    ClassCapacityError,
    NoNextTermError,
    UnknownLevelError,
    count_academic_terms,
    ensure_class_capacity,
    get_first_term,
    get_next_class,
    get_next_term,
    next_level,
    promotion_setting,
)
from apps.result.models import ReportCard
from .models import Enrollment, PromotionLog, Student

logger = logging.getLogger(__name__)

SKIPPED = 'skipped'
FAILED = 'failed'

YEAR_END_OUTCOMES = [
    PromotionLog.Status.PROMOTED,
    PromotionLog.Status.REPEATED,
    PromotionLog.Status.GRADUATED,
]

INELIGIBLE_STATUSES = (
    Enrollment.PromotionStatus.EXPELLED,
    Enrollment.PromotionStatus.ON_LEAVE,
    Enrollment.PromotionStatus.WITHDRAWN,
)


class PromotionError(Exception):
    """Base error for promotion requests that must not run"""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidSchoolError(PromotionError):
    pass


class IncompleteTermsError(PromotionError):
    pass


class PromotionInProgressError(PromotionError):
    status_code = 409


class EntityNotFoundError(PromotionError):
    status_code = 404


class DuplicateEnrollmentError(PromotionError):
    pass


class MaxLevelReachedError(PromotionError):
    pass


class TermTransitionError(PromotionError):
    pass


# ==================== POLICY ====================

def passing_threshold(school):
    """School override if set, otherwise the configured default"""
    if school.passing_threshold is not None:
        return school.passing_threshold
    return promotion_setting('DEFAULT_PASSING_THRESHOLD')


def has_passed(enrollment, report_card, threshold):
    """Decide pass or fail for one enrollment. Pure: no queries, no writes."""
    if report_card is None or not enrollment.is_active or enrollment.is_deleted:
        return False
    if enrollment.promotion_status in INELIGIBLE_STATUSES:
        return False
    return report_card.average >= threshold


def find_report_card(enrollment, academic_year):
    """Latest-term report card for the enrollment's student, class and year"""
    return (
        ReportCard.objects
        .filter(
            student_id=enrollment.student_id,
            student_class_id=enrollment.student_class_id,
            academic_year=academic_year,
            is_deleted=False,
        )
        .order_by('-term__term_number', '-date_updated')
        .first()
    )


@contextmanager
def promotion_lock(school_id, academic_year):
    """Allow one promotion or transition batch per school and year at a time"""
    key = f"promotion-lock:{school_id}:{academic_year}"
    if not cache.add(key, timezone.now().isoformat(), promotion_setting('LOCK_TIMEOUT')):
        raise PromotionInProgressError(
            _("A promotion batch is already running for this school and academic year."),
        )
    try:
        yield
    finally:
        cache.delete(key)


def _new_report(school, academic_year, outcomes, **extra):
    report = {
        'school': school.pk,
        'academic_year': academic_year,
        'processed': 0,
        'summary': {str(outcome): 0 for outcome in list(outcomes) + [SKIPPED, FAILED]},
        'results': [],
    }
    report.update(extra)
    return report


def _record(report, outcome):
    report['results'].append(outcome)
    report['summary'][outcome['outcome']] = report['summary'].get(outcome['outcome'], 0) + 1
    if outcome['outcome'] != SKIPPED:
        report['processed'] += 1


def _outcome_row(enrollment, outcome, to_class=None, new_enrollment=None, remarks=''):
    return {
        'enrollment': enrollment.pk,
        'student': enrollment.student_id,
        'registration_number': enrollment.student.registration_number,
        'from_class': enrollment.student_class_id,
        'to_class': to_class.pk if to_class else None,
        'new_enrollment': new_enrollment.pk if new_enrollment else None,
        'outcome': str(outcome),
        'remarks': str(remarks),
    }


class PromotionService:
    """Service for moving students between terms, levels and years"""

    # ==================== LOOKUPS ====================

    @classmethod
    def get_school(cls, school_id):
        school = School.objects.filter(pk=school_id).first()
        if school is None or school.is_deleted:
            raise InvalidSchoolError(_("Invalid or deleted school."))
        return school

    @classmethod
    def active_enrollments(cls, school, **filters):
        """
        Active, non-deleted enrollments of ``school`` matching ``filters``,
        keeping only the most recent one per student.
        """
        queryset = (
            Enrollment.objects
            .filter(school=school, is_active=True, is_deleted=False, **filters)
            .select_related('student', 'student_class', 'student_class__trade', 'term')
            .order_by('student_id', '-created_at', '-pk')
        )
        latest = {}
        for enrollment in queryset:
            latest.setdefault(enrollment.student_id, enrollment)
        return list(latest.values())

    # ==================== YEAR-END PROMOTION ====================

    @classmethod
    def promote_students(cls, school_id, academic_year, cron_job=False):
        """
        Promote, repeat or graduate every active student of a school at the
        end of ``academic_year``.

        Returns: report dict with a summary and one row per enrollment
        Raises: PromotionError subclasses before anything is written
        """
        school = cls.get_school(school_id)

        terms_required = promotion_setting('TERMS_PER_YEAR')
        if count_academic_terms(school, academic_year) < terms_required:
            raise IncompleteTermsError(_("Cannot promote: incomplete academic year terms."))

        with promotion_lock(school.pk, academic_year):
            if cron_job and PromotionLog.objects.filter(
                school=school,
                academic_year=academic_year,
                status__in=YEAR_END_OUTCOMES,
                cron_job=True,
            ).exists():
                logger.info("Promotion already processed (school=%s year=%s)", school.pk, academic_year)
                return _new_report(school, academic_year, YEAR_END_OUTCOMES, already_processed=True)

            threshold = passing_threshold(school)
            report = _new_report(school, academic_year, YEAR_END_OUTCOMES, already_processed=False)

            enrollments = cls.active_enrollments(school, term__academic_year=academic_year)
            logger.info(
                "Promotion started (school=%s year=%s enrollments=%s threshold=%s)",
                school.pk, academic_year, len(enrollments), threshold,
            )

            for enrollment in enrollments:
                _record(report, cls._promote_enrollment(enrollment, school, academic_year, threshold, cron_job))

        logger.info(
            "Promotion finished (school=%s year=%s summary=%s)",
            school.pk, academic_year, report['summary'],
        )
        return report

    @classmethod
    def _promote_enrollment(cls, enrollment, school, academic_year, threshold, cron_job):
        student = enrollment.student
        if not student.is_promotable:
            logger.debug("Skipping enrollment %s (role=%s graduated=%s)",
                         enrollment.pk, student.role, student.graduated)
            return _outcome_row(enrollment, SKIPPED, remarks=_("Not an ungraduated student"))

        try:
            with transaction.atomic():
                return cls._apply_year_end_outcome(enrollment, school, academic_year, threshold, cron_job)
        except Exception as exc:
            logger.exception("Promotion failed for enrollment %s", enrollment.pk)
            return _outcome_row(enrollment, FAILED, remarks=exc)

    @classmethod
    def _apply_year_end_outcome(cls, enrollment, school, academic_year, threshold, cron_job):
        student = enrollment.student
        current_class = enrollment.student_class
        report_card = find_report_card(enrollment, academic_year)
        to_class = None
        new_enrollment = None

        if not has_passed(enrollment, report_card, threshold):
            status = PromotionLog.Status.REPEATED
            to_class = current_class
            if enrollment.promotion_status in INELIGIBLE_STATUSES:
                remarks = _("Student %(status)s") % {'status': enrollment.get_promotion_status_display()}
            elif report_card is None:
                remarks = _("No report card found")
            else:
                remarks = _("Student repeating due to insufficient performance")
        else:
            upcoming = next_level(current_class.level)
            if upcoming is None:
                student.save(update_fields=student.mark_graduated())
                status = PromotionLog.Status.GRADUATED
                remarks = _("Student graduated")
            else:
                next_year = academic_year + 1
                to_class = get_next_class(current_class, upcoming, next_year)
                first_term = get_first_term(school, next_year)
                ensure_class_capacity(to_class, first_term)
                new_enrollment = Enrollment.enroll(
                    student=student,
                    student_class=to_class,
                    term=first_term,
                    school=school,
                    promotion_status=enrollment.promotion_status,
                    transferred_from_school=(
                        student.school if student.school_id not in (None, school.pk) else None
                    ),
                )
                status = PromotionLog.Status.PROMOTED
                remarks = _("Student promoted to next level")

        enrollment.deactivate(remarks)
        # retire every active row of the closed year, not only the latest
        Enrollment.objects.filter(
            student=student,
            school=school,
            term__academic_year=academic_year,
            is_active=True,
            is_deleted=False,
        ).exclude(pk=enrollment.pk).update(
            is_active=False,
            remarks=str(remarks)[:255],
            updated_at=timezone.now(),
        )
        PromotionLog.objects.create(
            student=student,
            from_class=current_class,
            to_class=to_class,
            academic_year=academic_year,
            status=status,
            remarks=str(remarks),
            school=school,
            manual=not cron_job,
            cron_job=cron_job,
            passing_threshold=threshold,
        )
        logger.info("Student %s %s (enrollment %s)", student.registration_number, status, enrollment.pk)
        return _outcome_row(enrollment, status, to_class, new_enrollment, remarks)

    # ==================== TERM TRANSITION ====================

    @classmethod
    def transition_students_to_next_term(cls, school_id, academic_year, current_term_number,
                                         cron_job=False, today=None):
        """
        Move every active enrollment of a finished term into the next term of
        the same year, keeping the class.
        """
        school = cls.get_school(school_id)

        current_term = AcademicTerm.objects.filter(
            school=school,
            academic_year=academic_year,
            term_number=current_term_number,
            is_deleted=False,
        ).first()
        if current_term is None:
            raise TermTransitionError(
                _("Term %(number)s not found for academic year %(year)s.") % {
                    'number': current_term_number, 'year': academic_year,
                }
            )

        today = today or timezone.localdate()
        if today < current_term.end_date:
            raise TermTransitionError(
                _("Term %(number)s has not yet ended.") % {'number': current_term_number}
            )

        with promotion_lock(school.pk, academic_year):
            outcomes = [
                PromotionLog.Status.TERM_TRANSITION,
                PromotionLog.Status.REPEATED,
                PromotionLog.Status.EXPELLED,
                PromotionLog.Status.ON_LEAVE,
                PromotionLog.Status.WITHDRAWN,
            ]

            if cron_job and PromotionLog.objects.filter(
                school=school,
                academic_year=academic_year,
                from_term=current_term,
                status=PromotionLog.Status.TERM_TRANSITION,
                cron_job=True,
            ).exists():
                logger.info("Term %s already transitioned (school=%s year=%s)",
                            current_term_number, school.pk, academic_year)
                return _new_report(school, academic_year, outcomes, already_processed=True)

            try:
                next_term = get_next_term(current_term)
            except NoNextTermError as exc:
                raise TermTransitionError(str(exc)) from exc

            report = _new_report(
                school, academic_year, outcomes,
                already_processed=False, from_term=current_term.pk, to_term=next_term.pk,
            )
            threshold = passing_threshold(school)

            for enrollment in cls.active_enrollments(school, term=current_term):
                try:
                    with transaction.atomic():
                        outcome = cls._transition_enrollment(
                            enrollment, current_term, next_term, threshold, cron_job,
                        )
                except Exception as exc:
                    logger.exception("Term transition failed for enrollment %s", enrollment.pk)
                    outcome = _outcome_row(enrollment, FAILED, remarks=exc)
                _record(report, outcome)

        logger.info(
            "Term transition finished (school=%s year=%s term=%s summary=%s)",
            school.pk, academic_year, current_term_number, report['summary'],
        )
        return report

    @classmethod
    def _transition_enrollment(cls, enrollment, current_term, next_term, threshold, cron_job):
        student = enrollment.student
        current_class = enrollment.student_class

        def log(status, remarks, to_term=None):
            PromotionLog.objects.create(
                student=student,
                from_class=current_class,
                to_class=current_class,
                from_term=current_term,
                to_term=to_term,
                academic_year=current_term.academic_year,
                status=status,
                remarks=str(remarks),
                school=enrollment.school,
                manual=not cron_job,
                cron_job=cron_job,
                passing_threshold=threshold,
            )

        if not student.is_promotable:
            remarks = _("Invalid student, role, or graduated")
            enrollment.deactivate(remarks)
            return _outcome_row(enrollment, SKIPPED, remarks=remarks)

        if enrollment.promotion_status in INELIGIBLE_STATUSES:
            remarks = _("Student %(status)s, not transitioned") % {
                'status': enrollment.get_promotion_status_display(),
            }
            enrollment.deactivate(remarks)
            log(enrollment.promotion_status, remarks)
            return _outcome_row(enrollment, enrollment.promotion_status, remarks=remarks)

        if Enrollment.objects.filter(
            student=student,
            term=next_term,
            is_active=True,
            is_deleted=False,
        ).exists():
            remarks = _("Student already enrolled in next term")
            enrollment.deactivate(remarks)
            return _outcome_row(enrollment, SKIPPED, remarks=remarks)

        try:
            ensure_class_capacity(current_class, next_term)
        except ClassCapacityError:
            remarks = _("Class capacity reached, not transitioned")
            enrollment.deactivate(remarks)
            log(PromotionLog.Status.REPEATED, remarks)
            return _outcome_row(enrollment, PromotionLog.Status.REPEATED, current_class, remarks=remarks)

        new_enrollment = Enrollment.enroll(
            student=student,
            student_class=current_class,
            term=next_term,
            school=enrollment.school,
            promotion_status=enrollment.promotion_status,
            transferred_from_school=enrollment.transferred_from_school,
        )
        remarks = _("Transitioned to Term %(number)s") % {'number': next_term.term_number}
        enrollment.deactivate(remarks)
        log(PromotionLog.Status.TERM_TRANSITION, remarks, to_term=next_term)
        return _outcome_row(
            enrollment, PromotionLog.Status.TERM_TRANSITION, current_class, new_enrollment, remarks,
        )

    # ==================== SINGLE STUDENT ====================

    @classmethod
    def promote_student(cls, student_id, current_class_id, academic_year):
        """
        Promote one student out of ``current_class_id`` into the next-level
        class of ``academic_year``.

        Returns: the new Enrollment
        """
        student = Student.objects.filter(pk=student_id).first()
        if student is None:
            raise EntityNotFoundError(_("Student not found"))

        current_class = (
            StudentClass.objects
            .select_related('school', 'trade')
            .filter(pk=current_class_id, is_deleted=False)
            .first()
        )
        if current_class is None:
            raise EntityNotFoundError(_("Current class not found"))

        try:
            upcoming = next_level(current_class.level)
        except UnknownLevelError as exc:
            raise PromotionError(str(exc)) from exc
        if upcoming is None:
            raise MaxLevelReachedError(_("Student is already at max level; cannot promote further"))

        if PromotionLog.objects.filter(
            student=student,
            academic_year=current_class.year,
            from_term__isnull=True,
        ).exists():
            raise DuplicateEnrollmentError(_("Promotion already recorded for this student and academic year"))

        school = current_class.school
        with transaction.atomic():
            to_class = get_next_class(current_class, upcoming, academic_year)
            if Enrollment.objects.filter(
                student=student,
                student_class=to_class,
                term__academic_year=academic_year,
                is_deleted=False,
            ).exists():
                raise DuplicateEnrollmentError(_("Student already enrolled in the next level class"))

            first_term = get_first_term(school, academic_year)
            try:
                ensure_class_capacity(to_class, first_term)
            except ClassCapacityError as exc:
                raise PromotionError(str(exc)) from exc

            enrollment = Enrollment.enroll(
                student=student,
                student_class=to_class,
                term=first_term,
                school=school,
                transferred_from_school=(
                    student.school if student.school_id not in (None, school.pk) else None
                ),
            )

            remarks = _("Student promoted manually")
            for previous in student.enrollments.filter(
                student_class=current_class, is_active=True, is_deleted=False,
            ):
                previous.deactivate(remarks)

            PromotionLog.objects.create(
                student=student,
                from_class=current_class,
                to_class=to_class,
                academic_year=current_class.year,
                status=PromotionLog.Status.PROMOTED,
                remarks=str(remarks),
                school=school,
                manual=True,
                passing_threshold=passing_threshold(school),
            )

        logger.info("Student %s promoted to %s (enrollment %s)",
                    student.registration_number, to_class.name, enrollment.pk)
        return enrollment

    # ==================== SCHEDULING ====================

    @classmethod
    def due_promotions(cls, today=None):
        """
        (school_id, academic_year) pairs whose final term has ended and that
        still have active enrollments for that year.
        """
        today = today or timezone.localdate()
        final_terms = AcademicTerm.objects.filter(
            term_number=promotion_setting('TERMS_PER_YEAR'),
            end_date__lt=today,
            is_deleted=False,
            school__is_deleted=False,
        ).order_by('school_id', 'academic_year')

        due = []
        for term in final_terms:
            if Enrollment.objects.filter(
                school_id=term.school_id,
                term__academic_year=term.academic_year,
                is_active=True,
                is_deleted=False,
            ).exists():
                due.append((term.school_id, term.academic_year))
        return due
