"""Installment scheduler: guest deposit/installment plan from the provider's payment timeline.

All dates in a plan are naive wall-clock times in the payment timezone: provider
due dates are shifted by ``tz_offset_hours`` and "now" is ``now_utc`` shifted the
same way. Every plan ends with a FINAL installment carrying
``total - sum(previous)``, so the plan always sums to the confirmed total.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum

from staybridge.services.availability.config import PaymentPolicy
from staybridge.services.availability.errors import InvalidCancellationPolicy
from staybridge.services.availability.models import (
    InstallmentRole,
    PaymentInstallment,
    ProviderPayment,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
UNIT = Decimal(1)


def _reject(message: str):
    logger.error(f"Invalid cancellation policy: {message}")
    raise InvalidCancellationPolicy(message)


class _PlanState(Enum):
    EMPTY = "empty"
    OPEN = "open"
    CLOSED = "closed"


class _PlanBuilder:
    """Deposit → Middle* → Final. Roles are fixed when an installment is added."""

    def __init__(self, total: Decimal, now_local: datetime):
        self.total = total
        self.now_local = now_local
        self.state = _PlanState.EMPTY
        self.installments: list[PaymentInstallment] = []

    def _add(self, amount: Decimal, due: datetime | None, role: InstallmentRole):
        self.installments.append(PaymentInstallment(
            due_date=due or self.now_local,
            amount=amount,
            role=role,
            due_now=due is None,
        ))

    def deposit(self, amount: Decimal, due: datetime | None = None):
        if self.state is not _PlanState.EMPTY:
            _reject("A deposit can only open a plan")
        self._add(amount, due, InstallmentRole.DEPOSIT)
        self.state = _PlanState.OPEN

    def middle(self, amount: Decimal, due: datetime | None = None):
        if self.state is not _PlanState.OPEN:
            _reject("A middle installment needs an open plan")
        self._add(amount, due, InstallmentRole.MIDDLE)

    def final(self, due: datetime | None = None) -> list[PaymentInstallment]:
        if self.state is _PlanState.CLOSED:
            _reject("Plan already closed")
        remainder = self.total - sum((i.amount for i in self.installments), Decimal(0))
        if remainder < 0:
            _reject(f"Scheduled installments exceed the total {self.total} by {-remainder}")
        self._add(remainder, due, InstallmentRole.FINAL)
        self.state = _PlanState.CLOSED
        return list(self.installments)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class InstallmentScheduler:
    def __init__(self, policy: PaymentPolicy | None = None):
        self.policy = policy or PaymentPolicy()

    def build_installment_plan(
        self,
        total_price: Decimal,
        profit_ratio: Decimal,
        provider_schedule: list[ProviderPayment],
        check_in_date: date,
        now_utc: datetime,
        tz_offset_hours: int,
    ) -> list[PaymentInstallment]:
        """
        Turn a confirmed total into a guest payment plan.

        Single-entry schedules (full payment policy) are charged in full when
        already due, otherwise as a deposit now plus the rest on the provider's
        date. Multi-entry schedules are scaled by ``profit_ratio``; a first
        installment larger than the low-deposit threshold is split into a
        deposit and a remainder, both charged now.
        """
        total = Decimal(str(total_price))
        ratio = Decimal(str(profit_ratio))
        if not provider_schedule:
            _reject("Provider payment schedule is empty")
        first = provider_schedule[0]
        if first.amount is None or first.amount <= 0:
            _reject(f"First provider installment has no positive amount: {first.amount}")

        offset = timedelta(hours=tz_offset_hours)
        now_local = _naive_utc(now_utc) + offset
        today = now_local.date()

        def shift(due: datetime) -> datetime:
            return _naive_utc(due) + offset

        def is_due(payment: ProviderPayment) -> bool:
            return payment.due is None or payment.due.date() <= today

        def scaled(amount: Decimal) -> Decimal:
            return (amount * ratio).quantize(CENT, rounding=ROUND_HALF_EVEN)

        deposit_amount = (total * self.policy.deposit_ratio).quantize(UNIT, rounding=ROUND_HALF_EVEN)
        plan = _PlanBuilder(total, now_local)

        if len(provider_schedule) == 1:
            if is_due(first):
                installments = plan.final()
            else:
                if deposit_amount > 0:
                    plan.deposit(deposit_amount)
                installments = plan.final(shift(first.due))
            return self._checked(installments, total)

        middles = provider_schedule[1:-1]
        last = provider_schedule[-1]
        for payment in middles:
            if payment.due is None or payment.amount is None:
                _reject(f"Middle provider installment is incomplete: {payment}")

        first_scaled = scaled(first.amount)
        if is_due(first) or first.amount <= total * self.policy.low_deposit_ratio:
            plan.deposit(first_scaled)
        elif first_scaled - deposit_amount > 0:
            plan.deposit(deposit_amount)
            plan.middle(first_scaled - deposit_amount)
        else:
            plan.deposit(first_scaled)

        for payment in middles:
            plan.middle(scaled(payment.amount), shift(payment.due))

        final_due = last.due or datetime.combine(check_in_date, time.min)
        return self._checked(plan.final(shift(final_due)), total)

    def _checked(self, installments: list[PaymentInstallment], total: Decimal) -> list[PaymentInstallment]:
        planned = sum((i.amount for i in installments), Decimal(0))
        if planned != total:
            _reject(f"Installments sum to {planned}, expected {total}")
        return installments


def split_prepayment(installments: list[PaymentInstallment]) -> tuple[Decimal, list[PaymentInstallment]]:
    """Amount charged now and the installments left for later."""
    prepay = sum((i.amount for i in installments if i.due_now), Decimal(0))
    return prepay, [i for i in installments if not i.due_now]
