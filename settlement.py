import logging
from decimal import Decimal
from typing import Dict, List

from models import Balance, Expense, LedgerSnapshot, Participant, Settlement, Transfer
from utils import EPSILON

logger = logging.getLogger(__name__)


def calculate_settlement(snapshot: LedgerSnapshot) -> Settlement:
    balances = calculate_balances(snapshot.participants, snapshot.expenses)
    transfers = optimize_transfers(balances)

    return Settlement(
        balances=balances,
        transfers=transfers,
        residual=unmatched_balance(balances, transfers)
    )


def calculate_balances(participants: List[Participant],
                       expenses: List[Expense]) -> List[Balance]:
    """Reduce the ledger into one paid/owed/net record per participant.

    Payers and beneficiaries outside ``participants`` are ignored, so the
    result only sums to zero when every reference resolves.
    """
    paid: Dict[str, Decimal] = {p.id: Decimal(0) for p in participants}
    owed: Dict[str, Decimal] = {p.id: Decimal(0) for p in participants}

    for expense in expenses:
        num_beneficiaries = len(expense.beneficiary_ids)
        if num_beneficiaries == 0:
            logger.warning("Skipping expense %s with no beneficiaries",
                           expense.id)
            continue

        if expense.payer_id in paid:
            paid[expense.payer_id] += expense.amount

        share = expense.amount / num_beneficiaries
        for beneficiary_id in expense.beneficiary_ids:
            if beneficiary_id in owed:
                owed[beneficiary_id] += share

    return [
        Balance(
            participant_id=p.id,
            participant_name=p.name,
            total_paid=paid[p.id],
            total_owed=owed[p.id],
            balance=paid[p.id] - owed[p.id]
        )
        for p in participants
    ]


def optimize_transfers(balances: List[Balance]) -> List[Transfer]:
    """Greedy settlement over a single balance-descending sort.

    ``i`` walks down from the largest creditor, ``j`` walks up from the
    largest debtor. Balances are not re-sorted after a partial transfer, and
    ties keep their input order, so the emitted list is fully determined by
    the order of ``balances``. This does not always give the fewest possible
    transfers, but it never needs more than one fewer than the number of
    unsettled participants.

    A match of exactly one cent is emitted: a balance of 0.01 is not settled,
    so every transfer amount is at least ``EPSILON`` rather than strictly
    above it.
    """
    ordered = sorted(balances, key=lambda b: b.balance, reverse=True)
    remaining = [b.balance for b in ordered]

    transfers = []

    i, j = 0, len(ordered) - 1
    while i < j:
        credit = remaining[i]
        debt = -remaining[j]

        if credit < EPSILON or debt < EPSILON:
            break

        # both sides are unsettled, so amount is at least one cent
        amount = min(debt, credit)
        creditor = ordered[i]
        debtor = ordered[j]
        transfers.append(Transfer(
            from_participant_id=debtor.participant_id,
            from_participant_name=debtor.participant_name,
            to_participant_id=creditor.participant_id,
            to_participant_name=creditor.participant_name,
            amount=amount
        ))
        logger.debug("%s pays %s %s", debtor.participant_name,
                     creditor.participant_name, amount)

        remaining[i] -= amount
        remaining[j] += amount

        if abs(remaining[j]) < EPSILON:
            j -= 1
        if remaining[i] < EPSILON:
            i += 1

    total = balance_total(balances)
    if abs(total) >= EPSILON:
        leftover = sum((abs(r) for r in remaining if abs(r) >= EPSILON),
                       Decimal(0))
        logger.warning(
            "Settlement left %s unmatched; balances sum to %s, not zero",
            leftover, total)

    return transfers


def unmatched_balance(balances: List[Balance],
                      transfers: List[Transfer]) -> Decimal:
    """Total absolute balance that the transfers fail to clear.

    Zero whenever the balances sum to zero: sub-cent dust on a consistent
    ledger counts as settled.
    """
    if abs(balance_total(balances)) < EPSILON:
        return Decimal(0)

    net = {b.participant_id: b.balance for b in balances}
    for t in transfers:
        net[t.from_participant_id] += t.amount
        net[t.to_participant_id] -= t.amount

    return sum((abs(v) for v in net.values() if abs(v) >= EPSILON),
               Decimal(0))


def balance_total(balances: List[Balance]) -> Decimal:
    return sum((b.balance for b in balances), Decimal(0))
