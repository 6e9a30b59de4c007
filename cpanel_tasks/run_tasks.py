#!/usr/bin/env python
"""
CPanel task runner - executes promotion tasks synchronously when Celery is not available
"""
import os
import sys
import django
import logging

# Setup Django
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'school_app.settings')
django.setup()

from tasks.promotion_tasks import promote_school_year, run_scheduled_promotions, transition_term

logging.basicConfig(level=logging.INFO, format='[%(asctime)s] %(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def run_promote(school_id, academic_year):
    logger.info(f"Running promotion for school {school_id}, year {academic_year}")
    return promote_school_year.apply(args=(school_id, academic_year)).get()


def run_transition(school_id, academic_year, term_number):
    logger.info(f"Running term {term_number} transition for school {school_id}, year {academic_year}")
    return transition_term.apply(args=(school_id, academic_year, term_number)).get()


def run_sweep():
    logger.info("Running scheduled promotion sweep")
    return run_scheduled_promotions.apply().get()


if __name__ == "__main__":
    # Called from CPanel cron jobs
    # Example: python cpanel_tasks/run_tasks.py promote 3 2024
    args = sys.argv[1:]
    command = args[0] if args else None

    if command == 'promote' and len(args) == 3:
        result = run_promote(int(args[1]), int(args[2]))
        print(f"Result: {result['status']} {result.get('summary', result.get('message'))}")

    elif command == 'transition' and len(args) == 4:
        result = run_transition(int(args[1]), int(args[2]), int(args[3]))
        print(f"Result: {result['status']} {result.get('summary', result.get('message'))}")

    elif command == 'sweep':
        print(f"Result: {run_sweep()}")

    else:
        print("Unknown command. Available commands:")
        print("  promote <school_id> <academic_year>")
        print("  transition <school_id> <academic_year> <current_term_number>")
        print("  sweep")
