from django import forms
from django.utils.translation import gettext_lazy as _


class PromotionRequestForm(forms.Form):
    """Validates a year-end promotion request"""

    # payload key -> form field
    aliases = {'schoolId': 'school_id', 'academicYear': 'academic_year'}

    school_id = forms.IntegerField(min_value=1, label=_('School'))
    academic_year = forms.IntegerField(min_value=1900, max_value=9999, label=_('Academic Year'))


class TermTransitionForm(PromotionRequestForm):
    aliases = {
        'schoolId': 'school_id',
        'academicYear': 'academic_year',
        'currentTermNumber': 'current_term_number',
    }

    current_term_number = forms.TypedChoiceField(
        choices=[(1, '1'), (2, '2'), (3, '3')],
        coerce=int,
        label=_('Current Term'),
        error_messages={'invalid_choice': _('currentTermNumber must be 1, 2, or 3')},
    )


class StudentPromotionForm(forms.Form):
    """Validates a single-student promotion request"""

    aliases = {
        'studentId': 'student_id',
        'currentClassId': 'current_class_id',
        'academicYear': 'academic_year',
    }

    student_id = forms.IntegerField(min_value=1, label=_('Student'))
    current_class_id = forms.IntegerField(min_value=1, label=_('Current Class'))
    academic_year = forms.IntegerField(min_value=1900, max_value=9999, label=_('Academic Year'))


class PromotionLogFilterForm(forms.Form):
    aliases = {'schoolId': 'school_id', 'academicYear': 'academic_year'}

    school_id = forms.IntegerField(min_value=1, required=False)
    academic_year = forms.IntegerField(min_value=1900, max_value=9999, required=False)
    status = forms.CharField(max_length=20, required=False)


def form_data(form_class, payload):
    """Map camelCase payload keys onto the form's field names"""
    data = {}
    for key, value in payload.items():
        data[form_class.aliases.get(key, key)] = value
    return data
