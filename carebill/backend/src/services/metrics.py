"""Prometheus metric definitions for billing reconciliation and invoicing."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

billable_visits_generated_total = Counter(
    "billable_visits_generated_total",
    "Billable visits created by generation runs.",
)

generation_issues_total = Counter(
    "billable_visit_generation_issues_total",
    "Care visits skipped by generation because of data or configuration issues.",
)

billable_visit_transitions_total = Counter(
    "billable_visit_transitions_total",
    "Reconciliation state machine transitions by action and outcome.",
    labelnames=["action", "outcome"],
)

invoices_generated_total = Counter(
    "invoices_generated_total",
    "Invoices created from approved billable visits.",
)

invoice_transitions_total = Counter(
    "invoice_transitions_total",
    "Invoice lifecycle transitions by action and outcome.",
    labelnames=["action", "outcome"],
)

invoice_generation_seconds = Histogram(
    "invoice_generation_seconds",
    "Time spent building and committing a single invoice.",
)

__all__ = [
    "billable_visit_transitions_total",
    "billable_visits_generated_total",
    "generation_issues_total",
    "invoice_generation_seconds",
    "invoice_transitions_total",
    "invoices_generated_total",
]
