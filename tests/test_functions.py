import re
from datetime import datetime

import pytest

from bilty.src import functions, schemas


@pytest.mark.parametrize(
    "quantity, unitType, expected",
    [
        (500, "kg", 10),
        (100, "KG", 2),
        (3, "tons", 60),
        (5, "quintal", 10),
        (7, "crate", 7),
        (7, "Carrate", 7),
        (4, "bag", 4),
        (9, "box", 9),
        (33, "kg", 0.66),
    ],
)
def test_convert_to_crates_bags(quantity, unitType, expected):
    assert functions.convertToCratesBags(quantity, unitType) == pytest.approx(expected)


def test_aggregate_crates_bags_rounds_sum():
    assert functions.aggregateCratesBags([0.1, 0.2, 10]) == 10.3


def test_bilty_number_format():
    number = functions.generateBiltyNumber(datetime(2025, 1, 5, 10, 30))
    assert re.fullmatch(r"BLT\d{6}[0-9A-F]{8}", number)


def test_bilty_numbers_differ_within_same_millisecond():
    now = datetime(2025, 1, 5, 10, 30)
    numbers = {functions.generateBiltyNumber(now) for _ in range(50)}
    assert len(numbers) == 50


def test_summarize_products_uses_first_line():
    lines = [
        schemas.ProductDetailSchema(
            id=1,
            bilty_id=1,
            product_name="Cherry Tomato",
            unit_type="crate",
            quantity=20,
            total_crates_bags=20,
            created_on=datetime(2025, 1, 5),
        ),
        schemas.ProductDetailSchema(
            id=2,
            bilty_id=1,
            product_name="Tomato",
            unit_type="kg",
            quantity=500,
            total_crates_bags=10,
            created_on=datetime(2025, 1, 5),
        ),
    ]
    summary = functions.summarizeProducts(lines)
    assert summary.name == "Cherry Tomato"
    assert summary.unit == "crate"
    assert summary.quantity == 520
    assert summary.plant == ""


def test_summarize_products_defaults_without_lines():
    summary = functions.summarizeProducts([])
    assert (summary.name, summary.quantity, summary.unit, summary.plant) == (
        "Tomato",
        0,
        "kg",
        "",
    )


def test_net_amount_is_floored():
    assert functions.calculateNetAmount(1000, 400) == 600
    assert functions.calculateNetAmount(400, 1000) == 0


def test_final_payment():
    assert functions.calculateFinalPayment(26, 0) == 13000
    assert functions.calculateFinalPayment(26, 300) == 12700
    assert functions.calculateFinalPayment(1, 800) == 0


def test_compute_billing_net_may_be_negative():
    lines = [
        schemas.ProductDetailSchema(
            id=7,
            bilty_id=1,
            product_name="Tomato",
            unit_type="kg",
            quantity=500,
            total_crates_bags=10,
            created_on=datetime(2025, 1, 5),
        )
    ]
    billing = functions.computeBilling(lines, {7: 100}, 1200, 300)
    assert billing.lines[0].total_amount == 1000
    assert billing.gross_total == 1000
    assert billing.net_total == -500


def test_compute_billing_sums_lines():
    lines = [
        schemas.ProductDetailSchema(
            id=index,
            bilty_id=1,
            product_name="Tomato",
            unit_type="crate",
            quantity=crates,
            total_crates_bags=crates,
            created_on=datetime(2025, 1, 5),
        )
        for index, crates in [(1, 10), (2, 4)]
    ]
    billing = functions.computeBilling(lines, {1: 300, 2: 250}, 500, 0)
    assert billing.gross_total == 4000
    assert billing.net_total == 3500


def test_billing_totals_are_rounded_to_paise():
    assert functions.calculateLineTotal(0.1, 3) == 0.3
    assert functions.calculateNetTotal(0.3, 0.1, 0.1) == 0.1
    assert functions.calculateNetAmount(0.3, 0.1) == 0.2
