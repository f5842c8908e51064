import csv, io

from conftest import BASE_URL
from bilty.src.enums import BillingStatus
from bilty.src.urls import (
    URL_BILLING_RECORD,
    URL_BILLING_RECORD_CSV,
    URL_BILLING_RECORD_STATUS,
    URL_BILLING_RECORD_SUMMARY,
)


def createRecord(client, header, **overrides) -> dict:
    data = {
        "vehicle_no": "MH12AB1234",
        "date": "2025-01-05",
        "amount": 12000,
        "advance": 3000,
    }
    data.update(overrides)
    response = client.post(BASE_URL + URL_BILLING_RECORD, headers=header, data=data)
    assert response.status_code == 201
    return response.json()


def test_create_billing_record(client, accountant, seller):
    record = createRecord(client, accountant, seller_id=seller["id"])
    assert record["net_amount"] == 9000
    assert record["status"] == BillingStatus.PENDING
    assert record["seller_id"] == seller["id"]


def test_net_amount_is_never_negative(client, accountant):
    record = createRecord(client, accountant, amount=1000, advance=1500)
    assert record["net_amount"] == 0


def test_invalid_billing_record(client, accountant):
    response = client.post(
        BASE_URL + URL_BILLING_RECORD,
        headers=accountant,
        data={"vehicle_no": "XYZ", "date": "2025-01-05", "amount": -1},
    )
    assert response.status_code == 422
    assert set(response.json()["detail"]) == {"vehicle_no", "amount"}


def test_billing_record_requires_date_and_amount(client, accountant):
    response = client.post(
        BASE_URL + URL_BILLING_RECORD,
        headers=accountant,
        data={"vehicle_no": "MH12AB1234", "date": "", "amount": ""},
    )
    assert response.status_code == 422
    assert response.headers["X-Error"] == "InvalidFormData"
    assert response.json()["detail"] == {
        "date": "Date is required",
        "amount": "Amount is required",
    }


def test_status_change_keeps_amounts(client, accountant):
    record = createRecord(client, accountant)
    for status in (BillingStatus.PAID, BillingStatus.OVERDUE, BillingStatus.PENDING):
        response = client.patch(
            BASE_URL + URL_BILLING_RECORD_STATUS,
            headers=accountant,
            data={"id": record["id"], "status": int(status)},
        )
        assert response.status_code == 200
        assert response.json()["status"] == status
        assert response.json()["net_amount"] == 9000


def test_status_change_of_unknown_record(client, accountant):
    response = client.patch(
        BASE_URL + URL_BILLING_RECORD_STATUS,
        headers=accountant,
        data={"id": 404, "status": int(BillingStatus.PAID)},
    )
    assert response.status_code == 404


def test_delete_billing_record(client, accountant):
    record = createRecord(client, accountant)
    response = client.request(
        "DELETE",
        BASE_URL + URL_BILLING_RECORD,
        headers=accountant,
        data={"id": record["id"]},
    )
    assert response.status_code == 204
    assert client.get(BASE_URL + URL_BILLING_RECORD, headers=accountant).json() == []


def test_filters_and_summary(client, accountant, seller):
    first = createRecord(client, accountant, seller_id=seller["id"])
    second = createRecord(
        client, accountant, vehicle_no="KA01CD5678", date="2025-01-06", amount=5000
    )
    third = createRecord(client, accountant, vehicle_no="KA01CD5678", amount=2000, advance=0)
    client.patch(
        BASE_URL + URL_BILLING_RECORD_STATUS,
        headers=accountant,
        data={"id": second["id"], "status": int(BillingStatus.OVERDUE)},
    )
    client.patch(
        BASE_URL + URL_BILLING_RECORD_STATUS,
        headers=accountant,
        data={"id": third["id"], "status": int(BillingStatus.PAID)},
    )

    def ids(**params):
        response = client.get(
            BASE_URL + URL_BILLING_RECORD, headers=accountant, params=params
        )
        return [r["id"] for r in response.json()]

    assert ids() == [third["id"], second["id"], first["id"]]
    assert ids(search="patil") == [first["id"]]
    assert ids(search="Patil Vegetables") == [first["id"]]
    assert ids(search="ka01") == [third["id"], second["id"]]
    assert ids(status=int(BillingStatus.OVERDUE)) == [second["id"]]
    assert ids(date="2025-01-06") == [second["id"]]

    summary = client.get(
        BASE_URL + URL_BILLING_RECORD_SUMMARY, headers=accountant
    ).json()
    assert summary == {
        "total_amount": 19000,
        "total_advance": 6000,
        "total_net": 13000,
        "pending_amount": 9000,
        "overdue_amount": 2000,
    }

    summary = client.get(
        BASE_URL + URL_BILLING_RECORD_SUMMARY,
        headers=accountant,
        params={"search": "KA01"},
    ).json()
    assert summary["total_amount"] == 7000
    assert summary["pending_amount"] == 0


def test_csv_export(client, accountant, seller):
    createRecord(client, accountant, seller_id=seller["id"])
    createRecord(client, accountant, vehicle_no="KA01CD5678", status=int(BillingStatus.PAID))

    response = client.get(
        BASE_URL + URL_BILLING_RECORD_CSV,
        headers=accountant,
        params={"status": int(BillingStatus.PENDING)},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "billing-records-" in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == [
        "Vehicle No",
        "Date",
        "Seller",
        "Amount",
        "Advance",
        "Net Amount",
        "Status",
    ]
    assert len(rows) == 2
    vehicleNo, date, sellerName, amount, advance, netAmount, status = rows[1]
    assert vehicleNo == "MH 12 AB 1234"
    assert date == "5 Jan 2025"
    assert sellerName == "Ramesh Patil"
    assert float(amount) == 12000
    assert float(netAmount) == 9000
    assert status == "Pending"


def test_csv_export_requires_reports(client, dispatcher):
    response = client.get(BASE_URL + URL_BILLING_RECORD_CSV, headers=dispatcher)
    assert response.status_code == 403
