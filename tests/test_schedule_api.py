from conftest import BASE_URL
from bilty.src.enums import Shift
from bilty.src.urls import URL_SCHEDULE


def createSchedule(client, header, **overrides) -> dict:
    data = {"driver_id": "DRV-001", "operating_days": 26, "tax_deduction": 300}
    data.update(overrides)
    response = client.post(BASE_URL + URL_SCHEDULE, headers=header, data=data)
    assert response.status_code == 201
    return response.json()


def test_create_schedule_computes_final_payment(client, dispatcher):
    schedule = createSchedule(client, dispatcher)
    assert schedule["final_payment"] == 12700
    assert schedule["shift"] == Shift.MORNING
    assert schedule["in_time"] == "06:00:00"
    assert schedule["out_time"] == "14:00:00"
    assert schedule["date"]


def test_final_payment_is_floored(client, dispatcher):
    schedule = createSchedule(client, dispatcher, operating_days=1, tax_deduction=900)
    assert schedule["final_payment"] == 0


def test_invalid_schedule(client, dispatcher):
    response = client.post(
        BASE_URL + URL_SCHEDULE,
        headers=dispatcher,
        data={"driver_id": " ", "operating_days": 40, "tax_deduction": -5},
    )
    assert response.status_code == 422
    assert set(response.json()["detail"]) == {
        "driver_id",
        "operating_days",
        "tax_deduction",
    }


def test_blank_driver_id(client, dispatcher):
    response = client.post(
        BASE_URL + URL_SCHEDULE, headers=dispatcher, data={"driver_id": ""}
    )
    assert response.status_code == 422
    assert response.json()["detail"] == {"driver_id": "Driver ID is required"}


def test_update_does_not_recompute_final_payment(client, dispatcher):
    schedule = createSchedule(client, dispatcher)
    response = client.patch(
        BASE_URL + URL_SCHEDULE,
        headers=dispatcher,
        data={"id": schedule["id"], "operating_days": 10},
    )
    assert response.status_code == 200
    assert response.json()["operating_days"] == 10
    assert response.json()["final_payment"] == 12700

    response = client.patch(
        BASE_URL + URL_SCHEDULE,
        headers=dispatcher,
        data={"id": schedule["id"], "final_payment": 4500},
    )
    assert response.json()["final_payment"] == 4500


def test_search_and_delete_schedule(client, dispatcher):
    first = createSchedule(client, dispatcher)
    second = createSchedule(
        client, dispatcher, driver_id="DRV-002", shift=int(Shift.EVENING)
    )

    def ids(**params):
        response = client.get(BASE_URL + URL_SCHEDULE, headers=dispatcher, params=params)
        return [s["id"] for s in response.json()]

    assert ids() == [second["id"], first["id"]]
    assert ids(search="drv-001") == [first["id"]]
    assert ids(search="evening") == [second["id"]]

    response = client.request(
        "DELETE", BASE_URL + URL_SCHEDULE, headers=dispatcher, data={"id": first["id"]}
    )
    assert response.status_code == 204
    assert ids() == [second["id"]]


def test_schedule_requires_capability(client, accountant):
    response = client.get(BASE_URL + URL_SCHEDULE, headers=accountant)
    assert response.status_code == 403
