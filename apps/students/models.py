from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Student(models.Model):
    """School member record; promotion only acts on the student role"""

    class Role(models.TextChoices):
        STUDENT = 'student', _('Student')
        TEACHER = 'teacher', _('Teacher')
        DEAN = 'dean', _('Dean')
        ADMIN = 'admin', _('Admin')
        HEADMASTER = 'headmaster', _('Headmaster')

    class Status(models.TextChoices):
        ACTIVE = 'active', _('Active')
        INACTIVE = 'inactive', _('Inactive')
        GRADUATED = 'graduated', _('Graduated')
        WITHDRAWN = 'withdrawn', _('Withdrawn')
        SUSPENDED = 'suspended', _('Suspended')

    registration_number = models.CharField(
        max_length=50,
        unique=True,
        editable=False,
        verbose_name=_("Registration Number"),
        help_text=_("Auto-generated registration number")
    )
    surname = models.CharField(max_length=200, verbose_name=_("Surname"))
    firstname = models.CharField(max_length=200, verbose_name=_("First Name"))
    other_name = models.CharField(max_length=200, blank=True, verbose_name=_("Other Name"))
    email = models.EmailField(blank=True, verbose_name=_("Email"))

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.STUDENT,
        verbose_name=_("Role")
    )
    school = models.ForeignKey(
        'corecode.School',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
        verbose_name=_("School")
    )

    # Status and Tracking
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        verbose_name=_("Status")
    )
    graduated = models.BooleanField(default=False, verbose_name=_("Graduated"))
    graduation_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Graduation Date")
    )

    # System fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['registration_number', 'surname', 'firstname']
        verbose_name = _('Student')
        verbose_name_plural = _('Students')
        permissions = [
            ('promote_students', 'Can run student promotion'),
        ]

    def __str__(self):
        return f"{self.registration_number} - {self.full_name}"

    def save(self, *args, **kwargs):
        if not self.registration_number:
            self.registration_number = self.generate_registration_number()
        super().save(*args, **kwargs)

    def generate_registration_number(self):
        """Generate registration number based on year and sequence"""
        year = timezone.now().year
        prefix = 'S' if self.role == self.Role.STUDENT else 'U'

        last = Student.objects.filter(
            registration_number__startswith=f'{prefix}{year}'
        ).order_by('-registration_number').first()

        if last and last.registration_number:
            try:
                new_num = int(last.registration_number[-4:]) + 1
            except ValueError:
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{year}{new_num:04d}"

    @property
    def full_name(self):
        if self.other_name:
            return f"{self.surname} {self.firstname} {self.other_name}"
        return f"{self.surname} {self.firstname}"

    @property
    def is_promotable(self):
        """Only ungraduated members with the student role take part in promotion"""
        return self.role == self.Role.STUDENT and not self.graduated

    def mark_graduated(self, when=None):
        """Set the graduation fields; caller saves"""
        self.graduated = True
        self.graduation_date = when or timezone.now()
        self.status = self.Status.GRADUATED
        return ['graduated', 'graduation_date', 'status', 'updated_at']


class Enrollment(models.Model):
    """Binds one student to one class for one term"""

    class PromotionStatus(models.TextChoices):
        ELIGIBLE = 'eligible', _('Eligible')
        REPEAT = 'repeat', _('Repeat')
        EXPELLED = 'expelled', _('Expelled')
        ON_LEAVE = 'on_leave', _('On Leave')
        WITHDRAWN = 'withdrawn', _('Withdrawn')

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='enrollments')
    student_class = models.ForeignKey(
        'corecode.StudentClass',
        on_delete=models.PROTECT,
        related_name='enrollments',
        verbose_name=_("Class")
    )
    term = models.ForeignKey('corecode.AcademicTerm', on_delete=models.PROTECT, related_name='enrollments')
    school = models.ForeignKey('corecode.School', on_delete=models.PROTECT, related_name='enrollments')

    promotion_status = models.CharField(
        max_length=20,
        choices=PromotionStatus.choices,
        default=PromotionStatus.ELIGIBLE,
        verbose_name=_("Promotion Status")
    )
    is_active = models.BooleanField(default=True)
    is_deleted = models.BooleanField(default=False)
    remarks = models.CharField(max_length=255, blank=True)
    transferred_from_school = models.ForeignKey(
        'corecode.School',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['student', 'term'], name='unique_enrollment_per_student_term'),
        ]
        indexes = [
            models.Index(fields=['student_class', 'term']),
            models.Index(fields=['school', 'is_active', 'is_deleted']),
        ]

    def __str__(self):
        return f"{self.student} - {self.student_class} - {self.term}"

    def clean(self):
        """Validate enrollment consistency"""
        errors = {}

        if self.student_id and self.student.role != Student.Role.STUDENT:
            errors['student'] = _('Student must be a user with role "student"')

        if self.student_class_id and self.student_class.school_id != self.school_id:
            errors['student_class'] = _('Class must belong to the specified school')

        if self.term_id and self.term.school_id != self.school_id:
            errors['term'] = _('Invalid term or term does not belong to the school')

        if (self.student_id and self.student.school_id
                and self.student.school_id != self.school_id
                and not self.transferred_from_school_id):
            errors['school'] = _(
                "School must match the student's school or specify transferred_from_school"
            )

        if errors:
            raise ValidationError(errors)

    @classmethod
    def enroll(cls, student, student_class, term, school, **extra):
        """Validate and save a new active enrollment"""
        enrollment = cls(
            student=student,
            student_class=student_class,
            term=term,
            school=school,
            **extra
        )
        enrollment.full_clean()
        enrollment.save()
        return enrollment

    def deactivate(self, remarks=''):
        self.is_active = False
        self.remarks = str(remarks)[:255]
        self.save(update_fields=['is_active', 'remarks', 'updated_at'])

    def as_dict(self):
        return {
            'id': self.pk,
            'student': self.student_id,
            'class': self.student_class_id,
            'term': self.term_id,
            'school': self.school_id,
            'promotion_status': self.promotion_status,
            'is_active': self.is_active,
        }


class PromotionLog(models.Model):
    """Append-only audit record of one promotion or term transition"""

    class Status(models.TextChoices):
        PROMOTED = 'promoted', _('Promoted')
        REPEATED = 'repeated', _('Repeated')
        GRADUATED = 'graduated', _('Graduated')
        EXPELLED = 'expelled', _('Expelled')
        ON_LEAVE = 'on_leave', _('On Leave')
        WITHDRAWN = 'withdrawn', _('Withdrawn')
        TERM_TRANSITION = 'term_transition', _('Term Transition')

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='promotion_logs')
    from_class = models.ForeignKey(
        'corecode.StudentClass',
        on_delete=models.PROTECT,
        related_name='promotions_from'
    )
    to_class = models.ForeignKey(
        'corecode.StudentClass',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='promotions_to'
    )
    from_term = models.ForeignKey(
        'corecode.AcademicTerm',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+'
    )
    to_term = models.ForeignKey(
        'corecode.AcademicTerm',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+'
    )
    academic_year = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices)
    remarks = models.CharField(max_length=255, blank=True)
    school = models.ForeignKey('corecode.School', on_delete=models.PROTECT, related_name='promotion_logs')
    promotion_date = models.DateTimeField(default=timezone.now)
    manual = models.BooleanField(default=False)
    cron_job = models.BooleanField(default=False)
    passing_threshold = models.FloatField(default=50)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-promotion_date']
        constraints = [
            # one year-end outcome per student and year
            models.UniqueConstraint(
                fields=['student', 'academic_year'],
                condition=models.Q(from_term__isnull=True),
                name='unique_year_end_log_per_student',
            ),
            models.UniqueConstraint(
                fields=['student', 'academic_year', 'from_term'],
                condition=models.Q(from_term__isnull=False),
                name='unique_term_log_per_student',
            ),
        ]

    def __str__(self):
        return f"{self.student} - {self.get_status_display()} ({self.academic_year})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Promotion logs are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Promotion logs are append-only")

    def as_dict(self):
        return {
            'id': self.pk,
            'student': self.student_id,
            'from_class': self.from_class_id,
            'to_class': self.to_class_id,
            'from_term': self.from_term_id,
            'to_term': self.to_term_id,
            'academic_year': self.academic_year,
            'status': self.status,
            'remarks': self.remarks,
            'school': self.school_id,
            'promotion_date': self.promotion_date.isoformat(),
            'manual': self.manual,
            'cron_job': self.cron_job,
            'passing_threshold': self.passing_threshold,
        }
