from typing import List

from models import Expense, ReportFilters


def apply_filters(expenses: List[Expense], filters: ReportFilters) -> List[Expense]:
    """Narrow an expense list by people, category and date range.

    Each constraint is skipped when its list is empty or its bound is None.
    """
    out = list(expenses)

    if filters.exact_match:
        wanted = set(filters.exact_match)
        out = [e for e in out if wanted.issubset(e.beneficiary_ids)]

    if filters.any_match:
        wanted = set(filters.any_match)
        out = [e for e in out if wanted.intersection(e.beneficiary_ids)]

    if filters.exclude:
        banned = set(filters.exclude)
        out = [
            e for e in out
            if e.payer_id not in banned and not banned.intersection(e.beneficiary_ids)
        ]

    if filters.paid_by:
        payers = set(filters.paid_by)
        out = [e for e in out if e.payer_id in payers]

    if filters.include_categories:
        included = set(filters.include_categories)
        out = [e for e in out if e.category_id and e.category_id in included]

    if filters.exclude_categories:
        excluded = set(filters.exclude_categories)
        out = [e for e in out if not e.category_id or e.category_id not in excluded]

    if filters.date_from:
        out = [e for e in out if e.date >= filters.date_from]
    if filters.date_to:
        out = [e for e in out if e.date <= filters.date_to]

    return out
