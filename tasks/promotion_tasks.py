"""
Promotion background tasks.

Design goals:
- Thin wrappers: all promotion rules live in apps.students.services
- Safe to retry: re-running a school/year only touches enrollments that
  are still active
- Observable: one summary log line per batch, alerts on failed enrollments
"""

from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="promotion.promote_school_year")
def promote_school_year(self, school_id: int, academic_year: int, cron_job: bool = False) -> dict:
    """
    Run year-end promotion for one school.

    PromotionError (incomplete terms, batch already running, ...) is
    returned as a failed result rather than raised: retrying will not help.
    """
    from apps.students.services import PromotionError, PromotionService

    task_id = self.request.id
    logger.info("[%s] Promotion requested (school=%s year=%s cron=%s)",
                task_id, school_id, academic_year, cron_job)

    try:
        report = PromotionService.promote_students(school_id, academic_year, cron_job=cron_job)
    except PromotionError as exc:
        logger.warning("[%s] Promotion rejected: %s", task_id, exc)
        return {"status": "rejected", "message": str(exc)}

    logger.info("[%s] Promotion completed: %s", task_id, report["summary"])
    return {"status": "completed", **report}


@shared_task(bind=True, name="promotion.transition_term")
def transition_term(self, school_id: int, academic_year: int, current_term_number: int,
                    cron_job: bool = False) -> dict:
    """Move active students of a finished term into the next term"""
    from apps.students.services import PromotionError, PromotionService

    task_id = self.request.id
    try:
        report = PromotionService.transition_students_to_next_term(
            school_id, academic_year, current_term_number, cron_job=cron_job,
        )
    except PromotionError as exc:
        logger.warning("[%s] Term transition rejected: %s", task_id, exc)
        return {"status": "rejected", "message": str(exc)}

    logger.info("[%s] Term transition completed: %s", task_id, report["summary"])
    return {"status": "completed", **report}


@shared_task(name="promotion.run_scheduled_promotions")
def run_scheduled_promotions() -> dict:
    """
    Beat entry point: promote every school/year whose final term has ended.

    Each school/year runs independently; a rejected, crashed or partly failed batch
    raises a system alert and the sweep moves on.
    """
    from apps.students.services import FAILED, PromotionError, PromotionService
    from tasks.system_tasks import send_system_alert_task

    due = PromotionService.due_promotions()
    logger.info("Scheduled promotion sweep started", extra={"due": len(due)})

    completed = rejected = errored = 0
    for school_id, academic_year in due:
        try:
            report = PromotionService.promote_students(school_id, academic_year, cron_job=True)
        except PromotionError as exc:
            rejected += 1
            logger.warning("Scheduled promotion rejected (school=%s year=%s): %s",
                           school_id, academic_year, exc)
            send_system_alert_task.delay(
                "promotion_rejected",
                school_id=school_id,
                academic_year=academic_year,
                error=str(exc),
            )
            continue
        except Exception as exc:
            errored += 1
            logger.exception("Scheduled promotion crashed (school=%s year=%s)", school_id, academic_year)
            send_system_alert_task.delay(
                "promotion_error",
                school_id=school_id,
                academic_year=academic_year,
                error=f"{type(exc).__name__}: {exc}",
            )
            continue

        completed += 1
        failures = [row for row in report["results"] if row["outcome"] == FAILED]
        if failures:
            send_system_alert_task.delay(
                "promotion_partial_failure",
                school_id=school_id,
                academic_year=academic_year,
                error="\n".join(
                    f"enrollment {row['enrollment']}: {row['remarks']}" for row in failures
                ),
            )

    logger.info("Scheduled promotion sweep finished (completed=%s rejected=%s errored=%s)",
                completed, rejected, errored)
    return {"due": len(due), "completed": completed, "rejected": rejected, "errored": errored}
