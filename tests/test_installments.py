from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import NOW
from staybridge.services.availability.config import PaymentPolicy
from staybridge.services.availability.errors import InvalidCancellationPolicy
from staybridge.services.availability.installments import InstallmentScheduler, split_prepayment
from staybridge.services.availability.models import InstallmentRole, ProviderPayment

NOW_LOCAL = datetime(2026, 6, 1, 12, 0)
CHECK_IN = date(2026, 7, 10)


def _plan(total, ratio, schedule, policy: PaymentPolicy | None = None):
    return InstallmentScheduler(policy).build_installment_plan(
        total_price=Decimal(str(total)),
        profit_ratio=Decimal(str(ratio)),
        provider_schedule=[ProviderPayment(due=due, amount=Decimal(str(amount))) for due, amount in schedule],
        check_in_date=CHECK_IN,
        now_utc=NOW,
        tz_offset_hours=3,
    )


def _rows(plan):
    return [(i.role, i.amount, i.due_date, i.due_now) for i in plan]


def test_future_full_payment_splits_into_deposit_and_remainder() -> None:
    plan = _plan(300, "1.2", [(datetime(2026, 6, 21), 250)])
    assert _rows(plan) == [
        (InstallmentRole.DEPOSIT, Decimal(90), NOW_LOCAL, True),
        (InstallmentRole.FINAL, Decimal(210), datetime(2026, 6, 21, 3, 0), False),
    ]


def test_full_payment_already_due_is_charged_now() -> None:
    plan = _plan(300, "1.2", [(datetime(2026, 6, 1), 250)])
    assert _rows(plan) == [(InstallmentRole.FINAL, Decimal(300), NOW_LOCAL, True)]


def test_deposit_rounds_to_whole_units_and_remainder_absorbs_cents() -> None:
    plan = _plan("301.67", "1.1", [(datetime(2026, 6, 21), 250)])
    assert [i.amount for i in plan] == [Decimal(91), Decimal("210.67")]


def test_due_first_installment_is_scaled_and_last_reconciles() -> None:
    plan = _plan(
        "241.37",
        "1.2",
        [(datetime(2026, 5, 30), 100), (datetime(2026, 6, 15), 50), (datetime(2026, 7, 1), 50)],
    )
    assert _rows(plan) == [
        (InstallmentRole.DEPOSIT, Decimal("120.00"), NOW_LOCAL, True),
        (InstallmentRole.MIDDLE, Decimal("60.00"), datetime(2026, 6, 15, 3, 0), False),
        (InstallmentRole.FINAL, Decimal("61.37"), datetime(2026, 7, 1, 3, 0), False),
    ]


def test_small_future_first_installment_is_taken_now() -> None:
    plan = _plan(240, "1.2", [(datetime(2026, 6, 10), 80), (datetime(2026, 7, 1), 120)])
    assert _rows(plan) == [
        (InstallmentRole.DEPOSIT, Decimal("96.00"), NOW_LOCAL, True),
        (InstallmentRole.FINAL, Decimal(144), datetime(2026, 7, 1, 3, 0), False),
    ]


def test_large_future_first_installment_is_split_into_two_now_payments() -> None:
    plan = _plan(240, "1.2", [(datetime(2026, 6, 10), 150), (datetime(2026, 7, 1), 50)])
    assert _rows(plan) == [
        (InstallmentRole.DEPOSIT, Decimal(72), NOW_LOCAL, True),
        (InstallmentRole.MIDDLE, Decimal("108.00"), NOW_LOCAL, True),
        (InstallmentRole.FINAL, Decimal(60), datetime(2026, 7, 1, 3, 0), False),
    ]


def test_low_deposit_threshold_comes_from_policy() -> None:
    policy = PaymentPolicy(low_deposit_threshold_percent=70)
    plan = _plan(240, "1.2", [(datetime(2026, 6, 10), 150), (datetime(2026, 7, 1), 50)], policy)
    assert [i.role for i in plan] == [InstallmentRole.DEPOSIT, InstallmentRole.FINAL]


def test_missing_last_due_date_falls_back_to_check_in() -> None:
    plan = _plan(200, 1, [(datetime(2026, 5, 30), 100), (None, 100)])
    assert plan[-1].due_date == datetime(2026, 7, 10, 3, 0)


@pytest.mark.parametrize(
    ("total", "ratio", "schedule"),
    [
        ("333.33", "1.111111", [(datetime(2026, 5, 1), "100.01"), (datetime(2026, 6, 20), "99.99"), (datetime(2026, 7, 1), "100.01")]),
        ("100.01", "1.333333", [(datetime(2026, 6, 5), "10.01"), (datetime(2026, 6, 9), "33.33"), (datetime(2026, 6, 9), "33.33")]),
        ("99.99", "1.05", [(datetime(2026, 8, 1), "95.23")]),
        ("1000.05", "1.099999", [(datetime(2026, 6, 2), "700.03"), (datetime(2026, 6, 30), "209.11")]),
    ],
)
def test_plan_always_sums_to_total(total, ratio, schedule) -> None:
    plan = _plan(total, ratio, schedule)
    assert sum(i.amount for i in plan) == Decimal(total)
    assert plan[-1].role is InstallmentRole.FINAL


@pytest.mark.parametrize(
    "schedule",
    [
        [],
        [(datetime(2026, 6, 10), 0)],
        [(datetime(2026, 6, 10), 50), (None, 50), (datetime(2026, 7, 1), 50)],
        [(datetime(2026, 5, 1), 300), (datetime(2026, 7, 1), 10)],
    ],
)
def test_unreconcilable_schedules_are_rejected(schedule) -> None:
    with pytest.raises(InvalidCancellationPolicy):
        _plan(200, 1, schedule)


def test_split_prepayment() -> None:
    plan = _plan(240, "1.2", [(datetime(2026, 6, 10), 150), (datetime(2026, 7, 1), 50)])
    prepay, later = split_prepayment(plan)
    assert prepay == Decimal(180)
    assert [i.amount for i in later] == [Decimal(60)]
