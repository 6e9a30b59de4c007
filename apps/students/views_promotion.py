"""
JSON endpoints for student promotion
"""
import json
import logging

from django.contrib.auth.decorators import login_required, permission_required
from django.contrib.auth.mixins import LoginRequiredMixin, PermissionRequiredMixin
from django.http import JsonResponse
from django.utils.translation import gettext_lazy as _
from django.views.decorators.http import require_POST
from django.views.generic import View

from .forms import (
    PromotionLogFilterForm,
    PromotionRequestForm,
    StudentPromotionForm,
    TermTransitionForm,
    form_data,
)
from .models import PromotionLog
from .services import PromotionError, PromotionService

logger = logging.getLogger(__name__)


def _payload(request):
    """Request body as a dict: JSON when sent as JSON, form data otherwise"""
    if request.content_type == 'application/json':
        try:
            payload = json.loads(request.body or b'{}')
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None
    return request.POST.dict()


def _bound_form(request, form_class):
    payload = _payload(request)
    if payload is None:
        return None
    return form_class(form_data(form_class, payload))


def _invalid(form):
    if form is None:
        return JsonResponse({'success': False, 'message': str(_('Malformed JSON body'))}, status=400)
    errors = {field: [str(message) for message in messages] for field, messages in form.errors.items()}
    return JsonResponse({'success': False, 'errors': errors}, status=400)


def _failure(exc):
    return JsonResponse({'success': False, 'message': str(exc)}, status=exc.status_code)


@login_required
@permission_required('students.promote_students', raise_exception=True)
@require_POST
def promote_students(request):
    """Run year-end promotion for one school and academic year"""
    form = _bound_form(request, PromotionRequestForm)
    if form is None or not form.is_valid():
        return _invalid(form)

    try:
        report = PromotionService.promote_students(
            form.cleaned_data['school_id'],
            form.cleaned_data['academic_year'],
        )
    except PromotionError as exc:
        return _failure(exc)
    except Exception as exc:
        logger.exception("Promotion crashed (payload=%s)", form.cleaned_data)
        return JsonResponse({
            'success': False,
            'message': f"Internal server error during promotion: {exc}",
        }, status=500)

    return JsonResponse({
        'success': True,
        'message': str(_('Promotion process completed successfully.')),
        **report,
    })


@login_required
@permission_required('students.promote_students', raise_exception=True)
@require_POST
def transition_students(request):
    """Move students from a finished term into the next one"""
    form = _bound_form(request, TermTransitionForm)
    if form is None or not form.is_valid():
        return _invalid(form)

    current_term_number = form.cleaned_data['current_term_number']
    try:
        report = PromotionService.transition_students_to_next_term(
            form.cleaned_data['school_id'],
            form.cleaned_data['academic_year'],
            current_term_number,
        )
    except PromotionError as exc:
        return _failure(exc)
    except Exception as exc:
        logger.exception("Term transition crashed (payload=%s)", form.cleaned_data)
        return JsonResponse({
            'success': False,
            'message': f"Internal server error during term transition: {exc}",
        }, status=500)

    return JsonResponse({
        'success': True,
        'message': str(_('Students successfully transitioned to Term %(number)s.') % {
            'number': current_term_number + 1,
        }),
        **report,
    })


@login_required
@permission_required('students.promote_students', raise_exception=True)
@require_POST
def promote_student(request):
    """Promote a single student to the next-level class"""
    form = _bound_form(request, StudentPromotionForm)
    if form is None or not form.is_valid():
        return _invalid(form)

    try:
        enrollment = PromotionService.promote_student(
            form.cleaned_data['student_id'],
            form.cleaned_data['current_class_id'],
            form.cleaned_data['academic_year'],
        )
    except PromotionError as exc:
        return _failure(exc)

    return JsonResponse({
        'success': True,
        'message': str(_('Student promoted successfully')),
        'enrollment': enrollment.as_dict(),
    }, status=201)


class PromotionLogView(LoginRequiredMixin, PermissionRequiredMixin, View):
    """List promotion logs, newest first"""
    permission_required = 'students.view_promotionlog'
    paginate_by = 200

    def get(self, request, *args, **kwargs):
        form = PromotionLogFilterForm(form_data(PromotionLogFilterForm, request.GET.dict()))
        if not form.is_valid():
            return _invalid(form)

        logs = PromotionLog.objects.all()
        if form.cleaned_data['school_id']:
            logs = logs.filter(school_id=form.cleaned_data['school_id'])
        if form.cleaned_data['academic_year']:
            logs = logs.filter(academic_year=form.cleaned_data['academic_year'])
        if form.cleaned_data['status']:
            logs = logs.filter(status=form.cleaned_data['status'])

        return JsonResponse({
            'success': True,
            'count': logs.count(),
            'logs': [log.as_dict() for log in logs[:self.paginate_by]],
        })
