"""Shared fixtures for the ledger tests."""

from datetime import date
from decimal import Decimal

import pytest

from models import Category, Expense, Participant


def make_expense(amount, payer, beneficiaries, day=date(2025, 3, 10),
                 category=None, title="Shared cost"):
    return Expense(
        title=title,
        amount=Decimal(str(amount)),
        date=day,
        payer_id=payer.id,
        beneficiary_ids=[b.id for b in beneficiaries],
        category_id=category.id if category else None,
    )


def replay(balances, transfers):
    """Apply transfers to the original balances; settled ledgers end near zero."""
    net = {b.participant_id: b.balance for b in balances}
    for t in transfers:
        net[t.from_participant_id] += t.amount
        net[t.to_participant_id] -= t.amount
    return net


@pytest.fixture
def alice():
    return Participant(id="alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Participant(id="bob", name="Bob")


@pytest.fixture
def carol():
    return Participant(id="carol", name="Carol")


@pytest.fixture
def dave():
    return Participant(id="dave", name="Dave")


@pytest.fixture
def people(alice, bob, carol):
    return [alice, bob, carol]


@pytest.fixture
def groceries():
    return Category(id="groceries", name="Groceries")


@pytest.fixture
def fuel():
    return Category(id="fuel", name="Fuel")
