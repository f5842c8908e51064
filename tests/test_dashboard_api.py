from datetime import datetime, timedelta, timezone

from conftest import BASE_URL, biltyForm
from bilty.src.enums import VehicleStatus
from bilty.src.store import dataStore
from bilty.src.urls import (
    URL_BILLING_RECORD,
    URL_BILTY,
    URL_DASHBOARD,
    URL_SUPPLIER,
    URL_VEHICLE,
)


def test_empty_dashboard(client, admin, supplier):
    response = client.get(BASE_URL + URL_DASHBOARD, headers=admin)
    assert response.status_code == 200
    stats = response.json()
    assert stats["bilties_today"] == 0
    assert stats["active_vehicles"] == 0
    assert stats["total_advance"] == 0
    assert stats["net_outstanding"] == 0
    assert stats["supplier_dispatch"] == [
        {
            "supplier_id": supplier["id"],
            "name": "Nashik Farmers",
            "plant_name": "",
            "percentage": 0,
        }
    ]


def test_dashboard_figures(client, admin, seller, supplier):
    client.post(BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"]))
    client.post(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(seller["id"], vehicle_no="KA01CD5678", advance=500),
    )
    client.post(
        BASE_URL + URL_VEHICLE,
        headers=admin,
        data={
            "transport_name": "Sai Transport",
            "driver_name": "Ravi",
            "vehicle_no": "GJ05EF4321",
            "driver_mobile": "9123456780",
            "status": int(VehicleStatus.MAINTENANCE),
        },
    )
    planted = client.post(
        BASE_URL + URL_SUPPLIER,
        headers=admin,
        data={"name": "Kolar Growers", "plant_name": "Kolar"},
    ).json()
    for amount, status in ((10000, 1), (4000, 2), (3000, 3)):
        client.post(
            BASE_URL + URL_BILLING_RECORD,
            headers=admin,
            data={
                "vehicle_no": "MH12AB1234",
                "date": "2025-01-05",
                "amount": amount,
                "advance": 1000,
                "status": status,
            },
        )

    stats = client.get(BASE_URL + URL_DASHBOARD, headers=admin).json()
    assert stats["bilties_today"] == 2
    assert stats["active_vehicles"] == 2
    assert stats["total_advance"] == 2500
    assert stats["net_outstanding"] == 5000

    dispatch = {s["supplier_id"]: s["percentage"] for s in stats["supplier_dispatch"]}
    # Bilty products carry no plant, so only suppliers without one match
    assert dispatch[supplier["id"]] == 100
    assert dispatch[planted["id"]] == 0


def test_bilties_today_uses_business_day(client, admin, seller):
    client.post(BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"]))
    tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
    assert dataStore.dashboardStats(tomorrow).bilties_today == 0
    assert dataStore.dashboardStats().bilties_today == 1


def test_dashboard_requires_capability(client, entryOperator):
    response = client.get(BASE_URL + URL_DASHBOARD, headers=entryOperator)
    assert response.status_code == 403
