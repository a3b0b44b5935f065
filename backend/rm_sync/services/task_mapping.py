"""Mapping between the local billable flag and RM's task field.

RM has no native billable flag, so the task category carries it.
"""

BILLABLE_TASK = "Billable"
NON_BILLABLE_TASK = "Business Development"


def map_billable_to_task(is_billable: bool) -> str:
    return BILLABLE_TASK if is_billable else NON_BILLABLE_TASK

