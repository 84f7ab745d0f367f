from decimal import Decimal

from app.salon_reports.services.reconciliation import (
    reconcile,
    reconcile_cash_drawer,
    reconcile_totals,
    reconcile_transactions,
    summarize_transactions,
)
from tests.report_helpers import transaction


def test_balanced_snapshot():
    snapshot = reconcile(gross_sales=1000, refunds=50, voids=25, discounts=100, net_sales=825)
    assert snapshot.expected_net == Decimal("825.00")
    assert snapshot.variance == Decimal("0.00")
    assert snapshot.status == "BALANCED"
    assert snapshot.describe() == "Balanced"


def test_variance_snapshot():
    snapshot = reconcile(gross_sales=1000, refunds=50, voids=25, discounts=100, net_sales=820)
    assert snapshot.variance == Decimal("5.00")
    assert snapshot.status == "VARIANCE"
    assert snapshot.describe() == "Variance(5.00)"


def test_variance_is_absolute():
    snapshot = reconcile(gross_sales=100, refunds=0, voids=0, discounts=0, net_sales=103)
    assert snapshot.variance == Decimal("3.00")


def test_one_cent_tolerance():
    assert reconcile(gross_sales="100.00", refunds=0, voids=0, discounts=0, net_sales="99.99").status == "BALANCED"
    assert reconcile(gross_sales="100.00", refunds=0, voids=0, discounts=0, net_sales="99.98").status == "VARIANCE"


def test_float_inputs_do_not_leak_binary_noise():
    snapshot = reconcile(gross_sales=0.1 + 0.2, refunds=0, voids=0, discounts=0, net_sales=0.3)
    assert snapshot.gross_sales == Decimal("0.30")
    assert snapshot.status == "BALANCED"


def test_empty_period_is_balanced_zero():
    snapshot = reconcile_transactions([])
    assert snapshot.gross_sales == Decimal("0.00")
    assert snapshot.expected_net == Decimal("0.00")
    assert snapshot.variance == Decimal("0.00")
    assert snapshot.is_balanced


def test_summarize_transactions_splits_tenders_and_returns():
    transactions = [
        transaction("ann", "108.00", tax="8.00", payment_method="CASH"),
        transaction("ann", "55.00", tax="0", tip="5.00", discount="10.00"),
        transaction("ann", "20.00", payment_method="GIFT_CARD"),
        transaction("ann", "-30.00", status="REFUNDED", subtotal="-30.00"),
        transaction("ann", "12.00", status="VOIDED"),
    ]
    totals = summarize_transactions(transactions)
    assert totals.gross_sales == Decimal("180.00")
    assert totals.discounts == Decimal("10.00")
    assert totals.tax == Decimal("8.00")
    assert totals.tips == Decimal("5.00")
    assert totals.refunds == Decimal("30.00")
    assert totals.voids == Decimal("12.00")
    assert totals.tender_cash == Decimal("108.00")
    assert totals.tender_gift == Decimal("20.00")
    # card sale less the card refund and the card void
    assert totals.tender_card == Decimal("13.00")
    assert (totals.sale_count, totals.refund_count, totals.void_count) == (3, 1, 1)

    snapshot = reconcile_transactions(transactions)
    # charged net: 100 + 50 + 20 = 170, less refunds and voids
    assert snapshot.net_sales == Decimal("128.00")
    assert snapshot.expected_net == Decimal("128.00")
    assert snapshot.is_balanced
    assert snapshot.tender_total == Decimal("141.00")
    assert snapshot.tender_expected == Decimal("141.00")
    assert snapshot.tender_variance == Decimal("0.00")


def test_mismatched_header_shows_variance():
    # subtotal claims 100 but only 95 was charged with no recorded discount
    transactions = [transaction("ann", "95.00", subtotal="100.00")]
    snapshot = reconcile_transactions(transactions)
    assert snapshot.variance == Decimal("5.00")
    assert snapshot.status == "VARIANCE"


def test_cash_drawer_variance_keeps_sign():
    short = reconcile_cash_drawer(opening=100, cash_sales="50.00", cash_refunds="10.00", counted="135.00")
    assert short.expected == Decimal("140.00")
    assert short.variance == Decimal("-5.00")
    assert short.status == "VARIANCE"

    over = reconcile_cash_drawer(opening=100, cash_sales=50, counted="150.01")
    assert over.variance == Decimal("0.01")
    assert over.status == "BALANCED"


def test_uncounted_drawer_has_no_variance():
    drawer = reconcile_cash_drawer(opening=100, cash_sales=50)
    assert drawer.actual is None
    assert drawer.variance == Decimal("0.00")


def test_cash_drawer_counts_paid_in_and_out():
    drawer = reconcile_cash_drawer(opening=100, cash_sales=50, paid_in="20.00", paid_out="15.50", counted="154.50")
    assert drawer.expected == Decimal("154.50")
    assert drawer.variance == Decimal("0.00")
    assert drawer.status == "BALANCED"


def test_status_is_decided_before_rounding():
    for discount in ("0.011", "0.014"):
        snapshot = reconcile(gross_sales="100.00", refunds=0, voids=0, discounts=discount, net_sales="100.00")
        assert snapshot.variance == Decimal("0.01")
        assert snapshot.status == "VARIANCE"

    exact = reconcile(gross_sales="100.00", refunds=0, voids=0, discounts="0.01", net_sales="100.00")
    assert exact.status == "BALANCED"


def test_cash_drawer_status_is_decided_before_rounding():
    drawer = reconcile_cash_drawer(opening=100, cash_sales="50.011", counted="150.00")
    assert drawer.variance == Decimal("-0.01")
    assert drawer.status == "VARIANCE"


def test_tender_check_skipped_without_tender_figures():
    snapshot = reconcile(gross_sales=100, refunds=0, voids=0, discounts=0, net_sales=100, tax=8)
    assert snapshot.tender_expected is None
    assert snapshot.tender_variance is None
    assert snapshot.is_balanced


def test_short_tenders_show_variance():
    snapshot = reconcile(
        gross_sales=100,
        refunds=0,
        voids=0,
        discounts=0,
        net_sales=100,
        tax=8,
        tips=2,
        tender_cash=60,
        tender_card=45,
    )
    assert snapshot.variance == Decimal("0.00")
    assert snapshot.tender_expected == Decimal("110.00")
    assert snapshot.tender_variance == Decimal("5.00")
    assert snapshot.status == "VARIANCE"
    assert snapshot.describe() == "Variance(0.00, tender 5.00)"


def test_unrecognized_payment_method_leaves_tender_variance():
    transactions = [
        transaction("ann", "60.00", payment_method="CASH"),
        transaction("ann", "40.00", payment_method="CHECK"),
    ]
    snapshot = reconcile_transactions(transactions)
    assert snapshot.variance == Decimal("0.00")
    assert snapshot.tender_total == Decimal("60.00")
    assert snapshot.tender_variance == Decimal("40.00")
    assert snapshot.status == "VARIANCE"


def test_refund_with_tax_and_tip_stays_balanced():
    transactions = [
        transaction("ann", "115.00", tax="8.00", tip="7.00", payment_method="CASH"),
        transaction("ann", "-54.00", status="REFUNDED", subtotal="-50.00", tax="-4.00", payment_method="CASH"),
    ]
    totals = summarize_transactions(transactions)
    assert totals.refunds == Decimal("50.00")
    assert totals.tax == Decimal("4.00")
    assert totals.tips == Decimal("7.00")
    assert totals.tender_cash == Decimal("61.00")

    snapshot = reconcile_totals(totals)
    assert snapshot.net_sales == Decimal("50.00")
    assert snapshot.tender_variance == Decimal("0.00")
    assert snapshot.is_balanced
