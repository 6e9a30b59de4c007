"""
System alerts for background promotion runs.

Scheduled batches have nobody watching them, so a rejected batch or one
with failed enrollments is reported to the site administrators by email.

- Explicit task name for Celery stability
- Controlled retries (no retry storms)
- Missing ADMINS is logged, not raised
"""

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

logger = logging.getLogger(__name__)


def _school_label(school_id):
    from apps.corecode.models import School

    school = School.objects.filter(pk=school_id).first() if school_id else None
    if school is None:
        return f"school #{school_id}" if school_id else "all schools"
    return f"{school.name} ({school.code})"


@shared_task(
    bind=True,
    name="system.send_alert",
    autoretry_for=(Exception,),
    retry_backoff=300,          # 5 minutes base backoff
    retry_backoff_max=1800,     # max 30 minutes
    retry_kwargs={"max_retries": 3},
)
def send_system_alert_task(
    self,
    alert_type: str,
    school_id: int | None = None,
    academic_year: int | None = None,
    error: str | None = None,
):
    """
    Email a promotion alert to ADMINS.

    ``alert_type`` is "promotion_rejected" (the batch did not run),
    "promotion_error" (the batch crashed before processing enrollments) or
    "promotion_partial_failure" (``error`` lists the failed enrollments).
    """
    task_id = self.request.id
    timestamp = timezone.now()
    school_label = _school_label(school_id)

    admin_emails = [email for _, email in getattr(settings, "ADMINS", []) if email]
    if not admin_emails:
        logger.warning("[%s] No ADMINS configured; %s alert for %s not emailed",
                       task_id, alert_type, school_label)
        return {
            "success": False,
            "reason": "no_admin_emails",
            "alert_type": alert_type,
        }

    school_name = getattr(settings, "SCHOOL_NAME", "School Management")
    subject = f"[{school_name}] Promotion alert: {alert_type}"
    message = "\n".join([
        "PROMOTION ALERT",
        "",
        f"Type: {alert_type}",
        f"Time: {timestamp:%Y-%m-%d %H:%M:%S}",
        f"School: {school_label}",
        f"Academic year: {academic_year or 'N/A'}",
        "",
        "Details:",
        error or "No details provided",
        "",
        f"Promotion logs: {getattr(settings, 'SITE_URL', '')}/students/promotion/logs/"
        f"?schoolId={school_id or ''}&academicYear={academic_year or ''}",
    ])

    send_mail(
        subject=subject,
        message=message,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=admin_emails,
        fail_silently=False,
    )

    logger.info(
        "[%s] Promotion alert sent",
        task_id,
        extra={"alert_type": alert_type, "school_id": school_id, "recipients": len(admin_emails)},
    )
    return {
        "success": True,
        "alert_type": alert_type,
        "sent_to": admin_emails,
        "sent_at": timestamp.isoformat(),
    }
