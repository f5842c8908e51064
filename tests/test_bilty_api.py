import re

from conftest import BASE_URL, biltyForm
from bilty.src.db import Billing, BillingLine, ProductDetail, Vehicle, sessionMaker
from bilty.src.enums import BiltyStatus, VehicleStatus
from bilty.src.urls import (
    URL_BILLING,
    URL_BILTY,
    URL_BILTY_STATUS,
    URL_SELLER,
    URL_VEHICLE,
)


def test_create_bilty(client, admin, seller):
    response = client.post(BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"]))
    assert response.status_code == 201
    bilty = response.json()

    assert re.fullmatch(r"BLT\d{6}[0-9A-F]{8}", bilty["bilty_number"])
    assert bilty["status"] == BiltyStatus.PENDING
    assert bilty["total_crates_bags"] == 10
    assert bilty["remaining"] == 3000
    assert bilty["seller_name"] == "Ramesh Patil"
    assert bilty["vehicle_no"] == "MH12AB1234"
    assert bilty["product"] == {
        "name": "Tomato",
        "quantity": 500,
        "unit": "kg",
        "plant": "",
    }
    [line] = bilty["product_details"]
    assert line["unit_type"] == "kg"
    assert line["total_crates_bags"] == 10

    listed = client.get(BASE_URL + URL_BILTY, headers=admin).json()
    assert listed[0]["id"] == bilty["id"]


def test_create_bilty_registers_vehicle(client, admin, seller):
    client.post(BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"]))

    vehicles = client.get(BASE_URL + URL_VEHICLE, headers=admin).json()
    assert len(vehicles) == 1
    vehicle = vehicles[0]
    assert vehicle["vehicle_no"] == "MH12AB1234"
    assert vehicle["vehicle_no_display"] == "MH 12 AB 1234"
    assert vehicle["transport_name"] == "Shree Ganesh Transport"
    assert vehicle["product_info"] == "Tomato Transport"
    assert vehicle["advance"] == 2000
    assert vehicle["quantity"] == 500
    assert vehicle["status"] == VehicleStatus.ACTIVE


def test_same_vehicle_is_reused(client, admin, seller):
    client.post(BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"]))
    response = client.post(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(seller["id"], vehicle_no="mh-12-ab-1234", driver_name="Anil"),
    )
    assert response.status_code == 201

    with sessionMaker() as session:
        vehicles = session.query(Vehicle).all()
    assert len(vehicles) == 1
    assert vehicles[0].driver_name == "Anil"

    bilties = client.get(BASE_URL + URL_BILTY, headers=admin).json()
    assert bilties[0]["vehicle_id"] == bilties[1]["vehicle_id"]


def test_delivery_address_defaults_to_seller(client, admin, seller):
    response = client.post(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(seller["id"], delivery_address=None),
    )
    assert response.status_code == 201
    assert response.json()["delivery_address"] == "Market Yard, Pune"


def test_create_bilty_reports_every_invalid_field(client, admin, seller):
    response = client.post(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(
            seller["id"],
            vehicle_no="MH12",
            rent=1000,
            advance=2000,
            product_details=[{"product_name": "Tomato", "unit_type": "kg", "quantity": 0}],
        ),
    )
    assert response.status_code == 422
    errors = response.json()["detail"]
    assert set(errors) == {"vehicle_no", "advance", "product_0_quantity"}

    assert client.get(BASE_URL + URL_BILTY, headers=admin).json() == []
    assert client.get(BASE_URL + URL_VEHICLE, headers=admin).json() == []


def test_unknown_seller_is_rejected(client, admin):
    response = client.post(BASE_URL + URL_BILTY, headers=admin, json=biltyForm(999))
    assert response.status_code == 422
    assert response.json()["detail"] == {"seller_id": "Please select a seller"}


def test_update_replaces_product_lines(client, admin, seller, bilty):
    oldIds = {line["id"] for line in bilty["product_details"]}
    assert len(oldIds) == 2

    response = client.put(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(
            seller["id"],
            id=bilty["id"],
            rent=6000,
            product_details=[
                {"product_name": "Tomato", "unit_type": "quintal", "quantity": 15},
            ],
        ),
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["bilty_number"] == bilty["bilty_number"]
    assert updated["rent"] == 6000
    assert updated["remaining"] == 4000
    assert updated["total_crates_bags"] == 30
    [line] = updated["product_details"]
    assert line["id"] not in oldIds
    assert line["total_crates_bags"] == 30

    with sessionMaker() as session:
        rows = session.query(ProductDetail).all()
    assert [row.id for row in rows] == [line["id"]]

    listed = client.get(BASE_URL + URL_BILTY, headers=admin).json()
    assert [l["id"] for l in listed[0]["product_details"]] == [line["id"]]


def test_update_grows_one_line_into_two(client, admin, seller):
    created = client.post(
        BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"])
    ).json()
    [oldLine] = created["product_details"]
    assert created["total_crates_bags"] == 10

    response = client.put(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(
            seller["id"],
            id=created["id"],
            product_details=[
                {"product_name": "Tomato", "unit_type": "crate", "quantity": 40},
                {"product_name": "Cherry Tomato", "unit_type": "tons", "quantity": 2},
            ],
        ),
    )
    assert response.status_code == 200
    updated = response.json()
    assert [l["product_name"] for l in updated["product_details"]] == [
        "Tomato",
        "Cherry Tomato",
    ]
    assert [l["total_crates_bags"] for l in updated["product_details"]] == [40, 40]
    assert updated["total_crates_bags"] == 80

    with sessionMaker() as session:
        rows = session.query(ProductDetail).order_by(ProductDetail.id).all()
    assert oldLine["id"] not in [row.id for row in rows]
    assert [row.id for row in rows] == [l["id"] for l in updated["product_details"]]
    assert sum(row.total_crates_bags for row in rows) == 80


def test_update_without_lines_keeps_them(client, admin, seller, bilty):
    form = biltyForm(seller["id"], id=bilty["id"], driver_tips=250)
    form.pop("product_details")
    response = client.put(BASE_URL + URL_BILTY, headers=admin, json=form)
    assert response.status_code == 200
    updated = response.json()
    assert updated["driver_tips"] == 250
    assert updated["status"] == bilty["status"]
    assert [l["id"] for l in updated["product_details"]] == [
        l["id"] for l in bilty["product_details"]
    ]
    assert updated["total_crates_bags"] == 30


def test_update_unknown_bilty(client, admin, seller):
    response = client.put(
        BASE_URL + URL_BILTY, headers=admin, json=biltyForm(seller["id"], id=404)
    )
    assert response.status_code == 404


def test_update_status(client, admin, bilty):
    response = client.patch(
        BASE_URL + URL_BILTY_STATUS,
        headers=admin,
        json={"id": bilty["id"], "status": BiltyStatus.DELIVERED},
    )
    assert response.status_code == 200
    assert response.json()["status"] == BiltyStatus.DELIVERED

    response = client.patch(
        BASE_URL + URL_BILTY_STATUS,
        headers=admin,
        json={"id": bilty["id"], "status": BiltyStatus.PENDING},
    )
    assert response.json()["status"] == BiltyStatus.PENDING


def test_delete_bilty_removes_lines_and_billings(client, admin, bilty):
    response = client.post(
        BASE_URL + URL_BILLING,
        headers=admin,
        json={
            "bilty_id": bilty["id"],
            "lines": [
                {"product_detail_id": line["id"], "sold_price": 200}
                for line in bilty["product_details"]
            ],
        },
    )
    assert response.status_code == 201

    response = client.request(
        "DELETE", BASE_URL + URL_BILTY, headers=admin, json={"id": bilty["id"]}
    )
    assert response.status_code == 204

    assert client.get(BASE_URL + URL_BILTY, headers=admin).json() == []
    billings = client.get(
        BASE_URL + URL_BILLING, headers=admin, params={"bilty_id": bilty["id"]}
    ).json()
    assert billings == []
    with sessionMaker() as session:
        assert session.query(ProductDetail).count() == 0
        assert session.query(Billing).count() == 0
        assert session.query(BillingLine).count() == 0


def test_delete_unknown_bilty_is_ignored(client, admin):
    response = client.request(
        "DELETE", BASE_URL + URL_BILTY, headers=admin, json={"id": 404}
    )
    assert response.status_code == 204


def test_bilty_search_and_filters(client, admin, seller, bilty):
    other = client.post(
        BASE_URL + URL_SELLER,
        headers=admin,
        data={"name": "Suresh Jadhav", "address": "Vashi"},
    ).json()
    client.post(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(other["id"], vehicle_no="KA01CD5678"),
    )

    def search(**params):
        response = client.get(BASE_URL + URL_BILTY, headers=admin, params=params)
        return [b["id"] for b in response.json()]

    assert search(search="jadhav") != search(search="patil")
    assert search(search="patil") == [bilty["id"]]
    assert search(search=bilty["bilty_number"].lower()) == [bilty["id"]]
    assert search(search="MH 12") == [bilty["id"]]
    assert len(search(status=int(BiltyStatus.PENDING))) == 2
    assert search(status=int(BiltyStatus.DELIVERED)) == []
    assert search(order_in=1)[0] == bilty["id"]


def test_seller_delete_blanks_bilty_seller(client, admin, seller, bilty):
    response = client.request(
        "DELETE", BASE_URL + URL_SELLER, headers=admin, data={"id": seller["id"]}
    )
    assert response.status_code == 204

    [listed] = client.get(BASE_URL + URL_BILTY, headers=admin).json()
    assert listed["seller_name"] == ""
    assert listed["id"] == bilty["id"]
