from conftest import BASE_URL
from bilty.src.db import sessionMaker
from bilty.src.store import DataStore, EntityCache
from bilty.src.schemas import ProductSummary
from bilty.src.urls import URL_BILLING


class ProductSummaryItem(ProductSummary):
    id: int


def test_entity_cache_order():
    cache = EntityCache()
    first, second = ProductSummaryItem(id=1), ProductSummaryItem(id=2)
    cache.add(first)
    cache.add(second)
    assert [item.id for item in cache.all()] == [2, 1]

    cache.replace(ProductSummaryItem(id=1, name="Cherry Tomato"))
    assert [item.id for item in cache.all()] == [2, 1]
    assert cache.get(1).name == "Cherry Tomato"

    cache.remove(2)
    assert len(cache) == 1
    assert cache.get(None) is None


def test_load_rebuilds_from_database(client, admin, bilty):
    client.post(
        BASE_URL + URL_BILLING,
        headers=admin,
        json={
            "bilty_id": bilty["id"],
            "lines": [
                {"product_detail_id": line["id"], "sold_price": 50}
                for line in bilty["product_details"]
            ],
        },
    )

    store = DataStore()
    with sessionMaker() as session:
        store.load(session)

    [loaded] = store.bilties.all()
    assert loaded.bilty_number == bilty["bilty_number"]
    assert [l.id for l in loaded.product_details] == [
        l["id"] for l in bilty["product_details"]
    ]
    assert loaded.total_crates_bags == 30
    assert loaded.product.quantity == 520
    assert store.resolveBilty(loaded).seller_name == "Ramesh Patil"

    [billing] = store.billingsOf(bilty["id"])
    assert billing.gross_total == 1500
    assert len(store.vehicles) == 1
