"""Money balancing for financial reports.

All amounts are handled as ``Decimal``. Inputs given as ``int``/``float``/
``str`` go through ``str()`` first so binary float noise never enters the
arithmetic. Balance status is decided on the exact figures; cents rounding
happens only on the values a snapshot exposes.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from app.salon_reports.services.records import (
    PAYMENT_CARD_METHODS,
    PAYMENT_CASH,
    PAYMENT_GIFT_CARD,
    TRANSACTION_REFUNDED,
    TRANSACTION_SALE_STATUSES,
    TRANSACTION_VOIDED,
    TransactionRecord,
)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
BALANCE_TOLERANCE = Decimal("0.01")

STATUS_BALANCED = "BALANCED"
STATUS_VARIANCE = "VARIANCE"

Amount = Decimal | int | float | str


def to_decimal(value: Amount | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Amount | None) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def balance_status(*variances: Decimal | None) -> str:
    for variance in variances:
        if variance is not None and abs(variance) > BALANCE_TOLERANCE:
            return STATUS_VARIANCE
    return STATUS_BALANCED


@dataclass(frozen=True)
class ReconciliationSnapshot:
    gross_sales: Decimal
    refunds: Decimal
    voids: Decimal
    discounts: Decimal
    net_sales: Decimal
    tax: Decimal
    tips: Decimal
    tender_cash: Decimal
    tender_card: Decimal
    tender_gift: Decimal
    expected_net: Decimal
    variance: Decimal
    status: str
    # None when no tender figures were supplied
    tender_expected: Decimal | None = None
    tender_variance: Decimal | None = None

    @property
    def is_balanced(self) -> bool:
        return self.status == STATUS_BALANCED

    @property
    def tender_total(self) -> Decimal:
        return self.tender_cash + self.tender_card + self.tender_gift

    def describe(self) -> str:
        if self.is_balanced:
            return "Balanced"
        if self.tender_variance:
            return f"Variance({self.variance}, tender {self.tender_variance})"
        return f"Variance({self.variance})"


def reconcile(
    gross_sales: Amount,
    refunds: Amount,
    voids: Amount,
    discounts: Amount,
    net_sales: Amount,
    tax: Amount = ZERO,
    tips: Amount = ZERO,
    tender_cash: Amount | None = None,
    tender_card: Amount | None = None,
    tender_gift: Amount | None = None,
) -> ReconciliationSnapshot:
    """Balance net sales against its components, and tenders against net.

    Tenders are checked only when at least one tender amount is given: what
    was collected (net of money handed back) must equal net sales plus tax
    and tips.
    """
    gross = to_decimal(gross_sales)
    refund_total = to_decimal(refunds)
    void_total = to_decimal(voids)
    discount_total = to_decimal(discounts)
    reported_net = to_decimal(net_sales)
    expected_net = gross - refund_total - void_total - discount_total
    variance = abs(reported_net - expected_net)

    tender_expected = tender_variance = None
    if any(value is not None for value in (tender_cash, tender_card, tender_gift)):
        collected = to_decimal(tender_cash) + to_decimal(tender_card) + to_decimal(tender_gift)
        tender_expected = reported_net + to_decimal(tax) + to_decimal(tips)
        tender_variance = abs(collected - tender_expected)

    return ReconciliationSnapshot(
        gross_sales=money(gross),
        refunds=money(refund_total),
        voids=money(void_total),
        discounts=money(discount_total),
        net_sales=money(reported_net),
        tax=money(tax),
        tips=money(tips),
        tender_cash=money(tender_cash),
        tender_card=money(tender_card),
        tender_gift=money(tender_gift),
        expected_net=money(expected_net),
        variance=money(variance),
        status=balance_status(variance, tender_variance),
        tender_expected=None if tender_expected is None else money(tender_expected),
        tender_variance=None if tender_variance is None else money(tender_variance),
    )


@dataclass(frozen=True)
class SalesTotals:
    gross_sales: Decimal
    refunds: Decimal
    voids: Decimal
    discounts: Decimal
    net_sales: Decimal
    tax: Decimal
    tips: Decimal
    tender_cash: Decimal
    tender_card: Decimal
    tender_gift: Decimal
    sale_count: int
    refund_count: int
    void_count: int

    @property
    def average_ticket(self) -> Decimal:
        if not self.sale_count:
            return ZERO
        return money(self.net_sales / Decimal(self.sale_count))


def _tender_key(payment_method: str) -> str | None:
    if payment_method == PAYMENT_CASH:
        return "tender_cash"
    if payment_method == PAYMENT_GIFT_CARD:
        return "tender_gift"
    if payment_method in PAYMENT_CARD_METHODS:
        return "tender_card"
    return None


def summarize_transactions(transactions: Iterable[TransactionRecord]) -> SalesTotals:
    """Roll transactions up into the figures a reconciliation needs.

    Gross comes from sale subtotals. Reported net is what was actually charged
    (total minus tax and tip) less refunds and voids, so any sale whose header
    fields disagree shows up as variance. Refund and void rows hand back their
    tax, tip and tender. Only cash, card and gift card count as tendered; a
    sale taken under any other method leaves a tender variance.
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    sale_count = refund_count = void_count = 0
    charged_net = ZERO
    for txn in transactions:
        tender = _tender_key(txn.payment_method)
        if txn.status in TRANSACTION_SALE_STATUSES:
            sale_count += 1
            totals["gross_sales"] += to_decimal(txn.subtotal)
            totals["discounts"] += to_decimal(txn.discount)
            totals["tax"] += to_decimal(txn.tax)
            totals["tips"] += to_decimal(txn.tip)
            charged_net += to_decimal(txn.total) - to_decimal(txn.tax) - to_decimal(txn.tip)
            if tender:
                totals[tender] += to_decimal(txn.total)
        elif txn.status in (TRANSACTION_REFUNDED, TRANSACTION_VOIDED):
            # reversal rows may be stored with negative amounts
            total = abs(to_decimal(txn.total))
            tax = abs(to_decimal(txn.tax))
            tip = abs(to_decimal(txn.tip))
            if txn.status == TRANSACTION_REFUNDED:
                refund_count += 1
                totals["refunds"] += total - tax - tip
            else:
                void_count += 1
                totals["voids"] += total - tax - tip
            totals["tax"] -= tax
            totals["tips"] -= tip
            if tender:
                totals[tender] -= total
    net_sales = charged_net - totals["refunds"] - totals["voids"]
    return SalesTotals(
        gross_sales=totals["gross_sales"],
        refunds=totals["refunds"],
        voids=totals["voids"],
        discounts=totals["discounts"],
        net_sales=net_sales,
        tax=totals["tax"],
        tips=totals["tips"],
        tender_cash=totals["tender_cash"],
        tender_card=totals["tender_card"],
        tender_gift=totals["tender_gift"],
        sale_count=sale_count,
        refund_count=refund_count,
        void_count=void_count,
    )


def reconcile_totals(totals: SalesTotals) -> ReconciliationSnapshot:
    return reconcile(
        gross_sales=totals.gross_sales,
        refunds=totals.refunds,
        voids=totals.voids,
        discounts=totals.discounts,
        net_sales=totals.net_sales,
        tax=totals.tax,
        tips=totals.tips,
        tender_cash=totals.tender_cash,
        tender_card=totals.tender_card,
        tender_gift=totals.tender_gift,
    )


def reconcile_transactions(transactions: Sequence[TransactionRecord]) -> ReconciliationSnapshot:
    return reconcile_totals(summarize_transactions(transactions))


@dataclass(frozen=True)
class CashDrawerReconciliation:
    opening: Decimal
    cash_sales: Decimal
    cash_refunds: Decimal
    expected: Decimal
    actual: Decimal | None
    variance: Decimal
    status: str


def reconcile_cash_drawer(
    *,
    opening: Amount,
    cash_sales: Amount,
    cash_refunds: Amount = ZERO,
    paid_in: Amount = ZERO,
    paid_out: Amount = ZERO,
    counted: Amount | None = None,
) -> CashDrawerReconciliation:
    """Expected closing cash against the counted drawer.

    The variance keeps its sign (counted minus expected) so short and over
    drawers stay distinguishable; an uncounted drawer has zero variance.
    """
    expected = (
        to_decimal(opening)
        + to_decimal(cash_sales)
        - to_decimal(cash_refunds)
        + to_decimal(paid_in)
        - to_decimal(paid_out)
    )
    actual = None if counted is None else money(counted)
    variance = ZERO if actual is None else actual - expected
    return CashDrawerReconciliation(
        opening=money(opening),
        cash_sales=money(cash_sales),
        cash_refunds=money(cash_refunds),
        expected=money(expected),
        actual=actual,
        variance=money(variance),
        status=balance_status(variance),
    )
