"""Derived statistics for the analytics, leaderboard and cost views.

Every function here is a pure reducer over a ledger snapshot; none of them
feeds the settlement optimizer.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from models import (AnalyticsSummary, Badge, Category, CategoryTotal, DayTotal,
                    Expense, Leaderboard, LedgerSnapshot, Participant,
                    PersonCost, PersonTotal, TrendPoint)

PERIODS = ("day", "week", "month")


def category_totals(expenses: List[Expense],
                    categories: List[Category]) -> List[CategoryTotal]:
    grand_total = sum((e.amount for e in expenses), Decimal(0))

    out = []
    for category in categories:
        matching = [e for e in expenses if e.category_id == category.id]
        total = sum((e.amount for e in matching), Decimal(0))
        percentage = total / grand_total * 100 if grand_total > 0 else Decimal(0)
        out.append(CategoryTotal(
            category_id=category.id,
            category_name=category.name,
            total=total,
            percentage=percentage,
            count=len(matching)
        ))
    return out


def most_expensive_category(totals: List[CategoryTotal]) -> Optional[CategoryTotal]:
    if not totals:
        return None
    best = totals[0]
    for t in totals[1:]:
        if t.total > best.total:
            best = t
    return best


def person_totals(participants: List[Participant],
                  expenses: List[Expense],
                  categories: Sequence[Category] = ()) -> List[PersonTotal]:
    """Amounts paid per participant, highest payer first."""
    category_names = {c.id: c.name for c in categories}

    out = []
    for participant in participants:
        paid = [e for e in expenses if e.payer_id == participant.id]

        by_category: Dict[str, Decimal] = {}
        for e in paid:
            name = category_names.get(e.category_id)
            if name is not None:
                by_category[name] = by_category.get(name, Decimal(0)) + e.amount

        out.append(PersonTotal(
            participant_id=participant.id,
            participant_name=participant.name,
            total_paid=sum((e.amount for e in paid), Decimal(0)),
            expense_count=len(paid),
            highest_expense=max((e.amount for e in paid), default=Decimal(0)),
            category_totals=by_category
        ))

    out.sort(key=lambda p: p.total_paid, reverse=True)
    return out


def person_costs(participants: List[Participant],
                 expenses: List[Expense]) -> List[PersonCost]:
    """Each participant's equal-share consumption, largest first."""
    cost: Dict[str, Decimal] = {p.id: Decimal(0) for p in participants}
    count: Dict[str, int] = {p.id: 0 for p in participants}

    for expense in expenses:
        if not expense.beneficiary_ids:
            continue
        share = expense.amount / len(expense.beneficiary_ids)
        for beneficiary_id in expense.beneficiary_ids:
            if beneficiary_id in cost:
                cost[beneficiary_id] += share
                count[beneficiary_id] += 1

    out = [
        PersonCost(
            participant_id=p.id,
            participant_name=p.name,
            total_cost=cost[p.id],
            expense_count=count[p.id]
        )
        for p in participants
    ]
    out.sort(key=lambda c: c.total_cost, reverse=True)
    return out


def daily_totals(expenses: List[Expense],
                 limit: Optional[int] = None) -> List[DayTotal]:
    totals: Dict[date, Decimal] = {}
    counts: Dict[date, int] = {}
    for e in expenses:
        totals[e.date] = totals.get(e.date, Decimal(0)) + e.amount
        counts[e.date] = counts.get(e.date, 0) + 1

    days = [DayTotal(date=d, total=t, count=counts[d]) for d, t in totals.items()]
    days.sort(key=lambda d: d.total, reverse=True)
    if limit is not None:
        days = days[:limit]
    return days


def fairness_score(amounts: List[Decimal]) -> Decimal:
    """100 when everyone paid the same, falling by 10 per unit of std dev.

    Never negative. An empty list has no spread and scores 100.
    """
    if not amounts:
        return Decimal(100)

    n = len(amounts)
    mean = sum(amounts, Decimal(0)) / n
    variance = sum(((a - mean) ** 2 for a in amounts), Decimal(0)) / n
    return max(Decimal(0), Decimal(100) - variance.sqrt() * 10)


def bucket_start(day: date, period: str) -> date:
    if period == "day":
        return day
    if period == "week":
        # weeks start on Sunday
        return day - timedelta(days=(day.weekday() + 1) % 7)
    if period == "month":
        return day.replace(day=1)
    raise ValueError(f"Unknown period: {period}")


def bucket_label(start: date, period: str) -> str:
    if period == "day":
        return start.strftime("%b %d")
    if period == "week":
        return start.strftime("Week of %b %d")
    return start.strftime("%b %Y")


def trend_buckets(expenses: List[Expense], period: str = "day") -> List[TrendPoint]:
    """Sum expense amounts per day, week or month in chronological order.

    Buckets are keyed and sorted by their start date; the label is display
    text only and may repeat across years.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")

    grouped: Dict[date, Decimal] = {}
    for e in expenses:
        start = bucket_start(e.date, period)
        grouped[start] = grouped.get(start, Decimal(0)) + e.amount

    return [
        TrendPoint(bucket_start=start, label=bucket_label(start, period),
                   amount=grouped[start])
        for start in sorted(grouped)
    ]


def build_leaderboard(snapshot: LedgerSnapshot,
                      badge_categories: Sequence[str] = ()) -> Leaderboard:
    rankings = person_totals(snapshot.participants, snapshot.expenses,
                             snapshot.categories)
    badges = []

    if rankings and rankings[0].expense_count > 0:
        leader = rankings[0]
        badges.append(Badge(title="Most Generous",
                            participant_name=leader.participant_name,
                            amount=leader.total_paid))

    active = [p for p in rankings if p.expense_count > 0]
    if active:
        quiet = min(active, key=lambda p: p.total_paid)
        badges.append(Badge(title="Silent Assassin",
                            participant_name=quiet.participant_name,
                            amount=quiet.total_paid))

        spender = max(active, key=lambda p: p.highest_expense)
        badges.append(Badge(title="Big Spender",
                            participant_name=spender.participant_name,
                            amount=spender.highest_expense))

    for name in badge_categories:
        leader, best = None, Decimal(0)
        for p in rankings:
            total = p.category_totals.get(name, Decimal(0))
            if total > best:
                leader, best = p, total
        if leader is not None:
            badges.append(Badge(title=f"Top {name} Payer",
                                participant_name=leader.participant_name,
                                amount=best))

    return Leaderboard(rankings=rankings, top_payers=rankings[:3], badges=badges)


def build_analytics(snapshot: LedgerSnapshot,
                    date_from: Optional[date] = None,
                    date_to: Optional[date] = None,
                    top_days: int = 5) -> AnalyticsSummary:
    expenses = snapshot.expenses
    total = sum((e.amount for e in expenses), Decimal(0))

    days = 1
    if date_from and date_to:
        days = max(1, (date_to - date_from).days)

    people = person_totals(snapshot.participants, expenses, snapshot.categories)
    categories = category_totals(expenses, snapshot.categories)
    num_people = len(snapshot.participants)

    return AnalyticsSummary(
        total=total,
        expense_count=len(expenses),
        average_per_day=total / days,
        average_per_person=total / num_people if num_people else Decimal(0),
        fairness_score=fairness_score([p.total_paid for p in people]),
        most_expensive_category=most_expensive_category(categories),
        category_totals=categories,
        person_totals=people,
        top_days=daily_totals(expenses, limit=top_days)
    )
