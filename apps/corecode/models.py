from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Level(models.TextChoices):
    """Rungs of the trade-program ladder, lowest first"""

    L3 = "L3", _("Level 3")
    L4 = "L4", _("Level 4")
    L5 = "L5", _("Level 5")


class School(models.Model):
    """School"""

    code = models.CharField(max_length=12, unique=True, verbose_name=_("Code"))
    name = models.CharField(max_length=200, unique=True, verbose_name=_("Name"))
    address = models.TextField(blank=True, verbose_name=_("Address"))
    contact_email = models.EmailField(blank=True, verbose_name=_("Contact Email"))
    contact_phone = models.CharField(max_length=20, blank=True, verbose_name=_("Contact Phone"))

    passing_threshold = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        verbose_name=_("Passing Threshold"),
        help_text=_("Minimum report card average for promotion. Leave empty for the default."),
    )

    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


class Trade(models.Model):
    """Trade (program track)"""

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_deleted = models.BooleanField(default=False)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


class AcademicTerm(models.Model):
    """Academic Term"""

    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="terms")
    academic_year = models.PositiveIntegerField(verbose_name=_("Academic Year"))
    term_number = models.PositiveSmallIntegerField(
        choices=[(1, _("Term 1")), (2, _("Term 2")), (3, _("Term 3"))],
        verbose_name=_("Term"),
    )
    start_date = models.DateField()
    end_date = models.DateField()
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["school", "academic_year", "term_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["school", "academic_year", "term_number"],
                name="unique_term_per_school_year",
            ),
        ]

    def __str__(self):
        return f"{self.academic_year} Term {self.term_number}"

    def clean(self):
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError({"end_date": _("Start date must be before end date")})


class StudentClass(models.Model):
    """One offering of a trade at one level for one academic year"""

    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="classes")
    trade = models.ForeignKey(Trade, on_delete=models.PROTECT, related_name="classes")
    level = models.CharField(max_length=5, choices=Level.choices)
    year = models.PositiveIntegerField(verbose_name=_("Academic Year"))
    capacity = models.PositiveIntegerField(
        default=30,
        validators=[MinValueValidator(1)],
        help_text=_("Maximum active enrollments per term"),
    )
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Class"
        verbose_name_plural = "Classes"
        ordering = ["school", "year", "level", "trade"]
        constraints = [
            models.UniqueConstraint(
                fields=["school", "trade", "level", "year"],
                name="unique_class_per_school_trade_level_year",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.year})"

    @property
    def name(self):
        return f"{self.level}{self.trade.code}"
