# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

"""
Periodic maintenance driver.

One cooperative timer, fired once per interval:
1. process due recurring entries
2. flag overdue financial transactions
3. flag overdue store-credit sales

Each step is its own atomic service call; the driver only sequences them
and logs a summary line.
"""
from __future__ import annotations

import time

from flask import current_app

from pdv.extensions import db
from pdv.time_utils import today as _today
from . import customer_service, finance_service, recurring_service


class MaintenanceTask:
    """Runs the daily maintenance steps with an injectable clock and sleep."""

    def __init__(self, clock=_today, sleep=time.sleep):
        self.clock = clock
        self.sleep = sleep
        self.runs = 0
        self.failures = 0

    def run_once(self) -> dict:
        as_of = self.clock()
        generated = recurring_service.process_all(today=as_of)
        overdue = finance_service.mark_overdue(today=as_of)
        overdue_credit = customer_service.mark_overdue_credit(today=as_of)
        self.runs += 1

        summary = {
            "date": as_of.isoformat(),
            "recurring_generated": len(generated),
            "financial_overdue": len(overdue),
            "credit_overdue": overdue_credit,
        }
        current_app.logger.info(
            "Maintenance run %s: %s recurring generated, %s financial overdue, %s credit overdue",
            summary["date"],
            summary["recurring_generated"],
            summary["financial_overdue"],
            summary["credit_overdue"],
        )
        return summary

    def run_forever(self, interval: float, max_runs: int | None = None) -> dict | None:
        """
        Run, then sleep `interval` seconds, until `max_runs` attempts (forever when None).

        A failed pass is rolled back and logged; the timer keeps going and
        the next pass picks up whatever the failed one left behind.
        Returns the last successful summary.
        """
        last_summary = None
        attempts = 0
        while max_runs is None or attempts < max_runs:
            attempts += 1
            try:
                last_summary = self.run_once()
            except Exception:
                db.session.rollback()
                self.failures += 1
                current_app.logger.exception("Maintenance run failed; retrying in %s seconds", interval)
            if max_runs is not None and attempts >= max_runs:
                break
            self.sleep(interval)
        return last_summary
