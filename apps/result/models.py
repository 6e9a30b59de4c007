from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError

COMPETENCE_PERCENTAGE = 70

SCORE_LIMITS = {
    'assessment1': 15,
    'assessment2': 15,
    'test': 10,
    'exam': 60,
}


class ReportCard(models.Model):
    """Per student, class, term and year summary used for promotion"""
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='report_cards')
    student_class = models.ForeignKey('corecode.StudentClass', on_delete=models.CASCADE, related_name='report_cards')
    academic_year = models.PositiveIntegerField()
    term = models.ForeignKey('corecode.AcademicTerm', on_delete=models.CASCADE, related_name='report_cards')
    school = models.ForeignKey('corecode.School', on_delete=models.CASCADE, related_name='report_cards')
    total_score = models.FloatField(default=0)
    average = models.FloatField(default=0)
    rank = models.PositiveIntegerField(null=True, blank=True)
    remarks = models.CharField(max_length=255, blank=True)
    is_deleted = models.BooleanField(default=False)
    date_created = models.DateTimeField(auto_now_add=True)
    date_updated = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-academic_year', 'student__surname', 'student__firstname']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'student_class', 'academic_year', 'term', 'school'],
                name='unique_report_card',
            ),
        ]

    def __str__(self):
        return f"{self.student} - {self.student_class} - {self.academic_year}"

    def recalculate(self, commit=True):
        """Recompute total and average from the subject results"""
        totals = [result.total_score for result in self.results.all()]
        self.total_score = sum(totals)
        self.average = self.total_score / len(totals) if totals else 0
        if commit:
            self.save(update_fields=['total_score', 'average', 'date_updated'])
        return self.average


class SubjectResult(models.Model):
    report_card = models.ForeignKey(ReportCard, on_delete=models.CASCADE, related_name='results')
    subject = models.CharField(max_length=200)
    assessment1 = models.FloatField(default=0)
    assessment2 = models.FloatField(default=0)
    test = models.FloatField(default=0)
    exam = models.FloatField(default=0)

    class Meta:
        ordering = ['subject']
        constraints = [
            models.UniqueConstraint(fields=['report_card', 'subject'], name='unique_subject_per_report_card'),
        ]

    def __str__(self):
        return f"{self.report_card} - {self.subject}"

    def clean(self):
        errors = {}
        for field, limit in SCORE_LIMITS.items():
            value = getattr(self, field) or 0
            if value < 0 or value > limit:
                errors[field] = _('Score must be between 0 and %(limit)s') % {'limit': limit}
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        self.report_card.recalculate()

    @property
    def total_score(self):
        return sum(getattr(self, field) or 0 for field in SCORE_LIMITS)

    @property
    def percentage(self):
        return round(self.total_score / sum(SCORE_LIMITS.values()) * 100)

    @property
    def decision(self):
        if self.percentage >= COMPETENCE_PERCENTAGE:
            return 'Competent'
        return 'Not Yet Competent'
