import argparse
from http import HTTPStatus
from requests import post

from bilty.src.db import sessionMaker, engine, ORMbase
from bilty.src.constants import DEFAULT_USER_PASSWORD
from bilty.src.urls import (
    URL_ACCOUNT_TOKEN,
    URL_SELLER,
    URL_SUPPLIER,
    URL_BILTY,
    URL_BILLING,
    URL_BILLING_RECORD,
    URL_SCHEDULE,
)


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables():
    session = sessionMaker()
    ORMbase.metadata.drop_all(engine)
    session.commit()
    print("* All tables deleted")
    session.close()


def createTables():
    session = sessionMaker()
    ORMbase.metadata.create_all(engine)
    session.commit()
    print("* All tables created")
    session.close()


def POST(
    URL: str,
    header: dict | None = None,
    status_code: int = HTTPStatus.CREATED,
    **kwargs,
):
    response = post(URL, headers=header or {}, **kwargs)
    if response.status_code != status_code:
        assert response.status_code == status_code
    else:
        return response


def testDB():
    # Base URL
    BASE_URL = "http://127.0.0.1:8080/user"

    # Create admin token
    credentials = {"email": "admin@bilty.com", "password": DEFAULT_USER_PASSWORD}
    response = POST((BASE_URL + URL_ACCOUNT_TOKEN), data=credentials)
    print("* Created token for admin")
    accessToken = {"Authorization": f"Bearer {response.json()['access_token']}"}

    # Create sellers
    seller1Data = {
        "name": "Ramesh Patil",
        "mobile_number": "9876543210",
        "address": "Market Yard, Gultekdi, Pune 411037",
        "shop_name": "Patil Vegetables",
    }
    seller2Data = {
        "name": "Suresh Jadhav",
        "mobile_number": "+91 9823456789",
        "address": "APMC Market, Vashi, Navi Mumbai 400703",
        "shop_name": "Jadhav Traders",
    }
    seller1 = POST((BASE_URL + URL_SELLER), header=accessToken, data=seller1Data)
    POST((BASE_URL + URL_SELLER), header=accessToken, data=seller2Data)
    print("* Created sellers")

    # Create suppliers
    supplierData = {
        "name": "Nashik Farmers Co-op",
        "contact_number": "9765432109",
        "address": "Pimpalgaon Baswant, Nashik",
        "product_category": "Tomato",
        "plant_name": "Pimpalgaon",
    }
    POST((BASE_URL + URL_SUPPLIER), header=accessToken, data=supplierData)
    print("* Created suppliers")

    # Create bilty, the vehicle is registered implicitly
    biltyData = {
        "seller_id": seller1.json()["id"],
        "transport_name": "Shree Ganesh Transport",
        "driver_name": "Vijay More",
        "vehicle_no": "MH 15 AB 1234",
        "driver_mobile": "9988776655",
        "rent": 8000,
        "advance": 3000,
        "driver_tips": 200,
        "product_details": [
            {"product_name": "Tomato", "unit_type": "crate", "quantity": 250},
            {"product_name": "Tomato", "unit_type": "kg", "quantity": 500},
        ],
    }
    bilty = POST((BASE_URL + URL_BILTY), header=accessToken, json=biltyData)
    print("* Created bilty")

    # Bill the bilty
    billingData = {
        "bilty_id": bilty.json()["id"],
        "lines": [
            {"product_detail_id": line["id"], "sold_price": 320}
            for line in bilty.json()["product_details"]
        ],
        "commission": 2500,
        "driver_paid": 500,
    }
    POST((BASE_URL + URL_BILLING), header=accessToken, json=billingData)
    print("* Created billing")

    # Billing record
    recordData = {
        "vehicle_no": "MH15AB1234",
        "date": bilty.json()["created_on"][:10],
        "amount": 12000,
        "seller_id": seller1.json()["id"],
        "advance": 3000,
    }
    POST((BASE_URL + URL_BILLING_RECORD), header=accessToken, data=recordData)
    print("* Created billing record")

    # Schedule
    scheduleData = {
        "driver_id": "DRV-001",
        "operating_days": 26,
        "tax_deduction": 300,
    }
    POST((BASE_URL + URL_SCHEDULE), header=accessToken, data=scheduleData)
    print("* Created schedule")


# Setup database
if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    # remove tables
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-test", action="store_true", help="add test data")
    args = parser.parse_args()

    if args.cr:
        createTables()
    if args.test:
        testDB()
    if args.rm:
        removeTables()
