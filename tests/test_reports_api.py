import csv
import io

from app.salon_reports.core.error_catalog import ErrorCatalog
from tests.report_helpers import auth, seed_salon, token_for

DAY = {"from": "2024-03-04", "to": "2024-03-04"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["trace_id"]


def test_ready(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_catalog_is_filtered_for_caller(client, db_session):
    salon = seed_salon(db_session)
    response = client.get("/reports/catalog", headers=auth(token_for("FRANCHISOR", salon)))
    assert response.status_code == 200
    payload = response.json()
    ids = {entry["report_id"] for entry in payload["reports"]}
    assert payload["role"] == "FRANCHISOR"
    assert "brand_performance_summary" in ids
    assert "tips_summary" not in ids
    assert "my_tips" not in ids

    with_payroll = client.get("/reports/catalog", headers=auth(token_for("FRANCHISOR", salon, payroll=True)))
    assert "tips_summary" in {entry["report_id"] for entry in with_payroll.json()["reports"]}


def test_missing_token_is_rejected(client):
    response = client.get("/reports/catalog")
    assert response.status_code == 401
    assert response.json()["trace_id"]


def test_invalid_token_is_rejected(client):
    response = client.get("/reports/catalog", headers=auth("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["code"] == ErrorCatalog.INVALID_TOKEN.code


def test_staff_performance_from_database(client, db_session):
    salon = seed_salon(db_session)
    response = client.get(
        "/reports/staff_performance",
        headers=auth(token_for("OWNER", salon)),
        params=DAY,
    )
    assert response.status_code == 200
    document = response.json()
    assert document["header"]["report_name"] == "Staff Performance Summary"
    assert document["header"]["location_label"] == "Downtown, Uptown"
    rows = document["sections"][0]["rows"]
    assert [row["name"] for row in rows] == ["Bruno", "Alice", "Carla"]
    assert [float(row["revenue"]) for row in rows] == [200.0, 50.0, 10.0]
    alice = rows[1]
    assert alice["no_show_rate"] == 50
    assert document["reconciliation"] is None
    assert document["footer"]["version"] == "v1.0"


def test_sales_summary_with_location_filter(client, db_session):
    salon = seed_salon(db_session)
    response = client.get(
        "/reports/sales_summary",
        headers=auth(token_for("OWNER", salon)),
        params={**DAY, "location_ids": salon.location_ids[0], "filter.channel": "walk-in"},
    )
    assert response.status_code == 200
    document = response.json()
    assert document["header"]["locations"] == ["Downtown"]
    assert document["header"]["filter_summary"] == "channel: walk-in"
    reconciliation = document["reconciliation"]
    assert float(reconciliation["gross_sales"]) == 250.0
    assert reconciliation["status"] == "BALANCED"


def test_employee_denied_brand_report(client, db_session):
    salon = seed_salon(db_session)
    token = token_for("EMPLOYEE", salon, employee_id=salon.employee_ids["alice"])
    response = client.get("/reports/brand_performance_summary", headers=auth(token), params=DAY)
    assert response.status_code == 403
    payload = response.json()
    assert payload["code"] == ErrorCatalog.ACCESS_DENIED.code
    assert payload["trace_id"]


def test_franchisor_without_payroll_denied_tips(client, db_session):
    salon = seed_salon(db_session)
    response = client.get("/reports/tips_summary", headers=auth(token_for("FRANCHISOR", salon)), params=DAY)
    assert response.status_code == 403


def test_location_outside_scope(client, db_session):
    salon = seed_salon(db_session)
    other = seed_salon(db_session, suffix="b")
    response = client.get(
        "/reports/sales_summary",
        headers=auth(token_for("OWNER", salon)),
        params={**DAY, "location_ids": other.location_ids[0]},
    )
    assert response.status_code == 400
    assert response.json()["code"] == ErrorCatalog.SCOPE_VIOLATION.code


def test_foreign_tenant_location_in_token_is_rejected(client, db_session):
    salon = seed_salon(db_session)
    other = seed_salon(db_session, suffix="b")
    token = token_for("OWNER", salon, location_ids=[other.location_ids[0]])
    response = client.get("/reports/sales_summary", headers=auth(token), params=DAY)
    assert response.status_code == 400
    assert response.json()["code"] == ErrorCatalog.SCOPE_VIOLATION.code


def test_inverted_range(client, db_session):
    salon = seed_salon(db_session)
    response = client.get(
        "/reports/sales_summary",
        headers=auth(token_for("OWNER", salon)),
        params={"from": "2024-03-05", "to": "2024-03-04"},
    )
    assert response.status_code == 400
    payload = response.json()
    assert payload["code"] == ErrorCatalog.INVALID_REQUEST.code
    assert payload["details"]["reason_code"] == "DATE_RANGE_INVERTED"


def test_missing_dates_fail_validation(client, db_session):
    salon = seed_salon(db_session)
    response = client.get("/reports/sales_summary", headers=auth(token_for("OWNER", salon)))
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code


def test_unknown_report(client, db_session):
    salon = seed_salon(db_session)
    response = client.get("/reports/nope", headers=auth(token_for("OWNER", salon)), params=DAY)
    assert response.status_code == 400
    assert response.json()["code"] == ErrorCatalog.REPORT_NOT_FOUND.code


def test_my_sales_scoped_to_employee(client, db_session):
    salon = seed_salon(db_session)
    token = token_for(
        "EMPLOYEE",
        salon,
        location_ids=[salon.location_ids[0]],
        employee_id=salon.employee_ids["alice"],
    )
    response = client.get("/reports/my_sales", headers=auth(token), params=DAY)
    assert response.status_code == 200
    rows = response.json()["sections"][0]["rows"]
    assert [row["name"] for row in rows] == ["Alice"]

    denied = client.get(
        "/reports/my_sales",
        headers=auth(token),
        params={**DAY, "employee_id": salon.employee_ids["bruno"]},
    )
    assert denied.status_code == 400
    assert denied.json()["code"] == ErrorCatalog.SCOPE_VIOLATION.code


def test_z_report_csv_export(client, db_session):
    salon = seed_salon(db_session)
    response = client.get(
        "/reports/shift_close_z_report/csv",
        headers=auth(token_for("MANAGER", salon, location_ids=[salon.location_ids[0]])),
        params=DAY,
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "shift_close_z_report_2024-03-04_2024-03-04.csv" in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    titles = [row[0] for row in rows if len(row) == 1]
    assert titles == ["SUMMARY", "CASH RECONCILIATION", "TAX SUMMARY", "TOP SELLING ITEMS"]
    cash = {row[0]: row[1] for row in rows[rows.index(["CASH RECONCILIATION"]) + 1 :] if len(row) == 2}
    assert cash["Opening Cash"] == "100.00"
    assert cash["Expected Closing"] == "150.00"
    assert cash["Variance"] == "0.00"


def test_metrics_endpoint_counts_report_runs(client, db_session):
    salon = seed_salon(db_session)
    client.get("/reports/sales_summary", headers=auth(token_for("OWNER", salon)), params=DAY)
    response = client.get("/metrics")
    assert response.status_code == 200
    body = response.text
    assert "report_runs_total" in body
    assert "http_requests_total" in body
