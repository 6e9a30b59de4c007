from django.core.management.base import BaseCommand, CommandError

from apps.students.services import FAILED, PromotionError, PromotionService


class Command(BaseCommand):
    help = 'Run year-end promotion for one school and academic year'

    def add_arguments(self, parser):
        parser.add_argument('--school', dest='school_id', type=int, required=True,
                            help='School ID')
        parser.add_argument('--year', dest='academic_year', type=int, required=True,
                            help='Academic year to close')
        parser.add_argument('--cron', action='store_true',
                            help='Mark the run as scheduled (skipped if already processed)')
        parser.add_argument('--verbose-results', action='store_true',
                            help='Print one line per enrollment')

    def handle(self, *args, **options):
        try:
            report = PromotionService.promote_students(
                options['school_id'],
                options['academic_year'],
                cron_job=options['cron'],
            )
        except PromotionError as exc:
            raise CommandError(str(exc))

        self.stdout.write(self.style.SUCCESS('=' * 60))
        self.stdout.write(self.style.SUCCESS(
            f"PROMOTION REPORT - school {report['school']}, {report['academic_year']}"
        ))
        self.stdout.write(self.style.SUCCESS('=' * 60))

        if report.get('already_processed'):
            self.stdout.write(self.style.WARNING('Promotion already processed for this academic year.'))
            return

        for outcome, count in report['summary'].items():
            style = self.style.ERROR if outcome == FAILED and count else self.style.SUCCESS
            self.stdout.write(f"   {outcome:<12} {style(str(count))}")

        if options['verbose_results']:
            self.stdout.write('')
            self.stdout.write(f"{'Student':<15} {'Outcome':<12} {'Remarks'}")
            self.stdout.write('-' * 60)
            for row in report['results']:
                self.stdout.write(
                    f"{row['registration_number']:<15} {row['outcome']:<12} {row['remarks']}"
                )
