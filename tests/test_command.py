from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from apps.students.models import PromotionLog

pytestmark = pytest.mark.django_db


def run(*args):
    out = StringIO()
    call_command("promote_students", *args, stdout=out)
    return out.getvalue()


class TestPromoteStudentsCommand:
    def test_prints_summary(self, school, l3_class, enrolled_student):
        student, _ = enrolled_student(l3_class, average=72)

        output = run("--school", str(school.pk), "--year", "2024", "--verbose-results")

        assert "PROMOTION REPORT" in output
        assert "promoted" in output
        assert student.registration_number in output
        assert PromotionLog.objects.get(student=student).manual

    def test_cron_flag(self, school, l3_class, enrolled_student):
        student, _ = enrolled_student(l3_class, average=72)
        run("--school", str(school.pk), "--year", "2024", "--cron")

        output = run("--school", str(school.pk), "--year", "2024", "--cron")

        assert PromotionLog.objects.get(student=student).cron_job
        assert "already processed" in output

    def test_rejected_batch_is_a_command_error(self, school):
        with pytest.raises(CommandError, match="incomplete academic year terms"):
            run("--school", str(school.pk), "--year", "2024")
