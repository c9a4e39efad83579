"""
Parallel sales against one inventory row.

Threads buy from a single (drug, store) row through a coordinator with its
default retry budget. Every sale the stock can cover must go through, the
rest must fail with insufficient stock, and the stock must end where the
completed sales say it should: no lost update can oversell or leave stock
behind.
"""

import threading

import pytest

from pharmacy_pos.core.exceptions import InsufficientStockError
from pharmacy_pos.services.sale_service import SaleService
from tests.fixtures.data_helpers import count_sales, get_stock, seed_pos_data


def _buy_in_parallel(service, data, buyers):
    start = threading.Barrier(buyers)
    outcomes = []
    lock = threading.Lock()

    def buy():
        start.wait()
        try:
            service.create_sale(
                drug_id=data.drug_id,
                store_id=data.store_id,
                customer_id=data.customer_id,
                cashier_id=data.cashier_id,
                quantity=1,
            )
            result = "sold"
        except InsufficientStockError:
            result = "insufficient"
        except Exception as e:  # surfaced through the assertions below
            result = repr(e)
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=buy) for _ in range(buyers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=120)
    return sorted(outcomes)


@pytest.mark.slow
def test_parallel_sales_never_oversell(file_database):
    data = seed_pos_data(file_database, quantity=5)

    outcomes = _buy_in_parallel(SaleService(file_database), data, buyers=8)

    assert outcomes == ["insufficient"] * 3 + ["sold"] * 5
    item = get_stock(file_database, data.item_id)
    assert item.quantity == 0
    assert item.version == 5
    assert count_sales(file_database) == 5


@pytest.mark.slow
def test_parallel_sales_all_succeed_when_stock_covers_them(file_database):
    data = seed_pos_data(file_database, quantity=20)

    outcomes = _buy_in_parallel(SaleService(file_database), data, buyers=20)

    assert outcomes == ["sold"] * 20
    item = get_stock(file_database, data.item_id)
    assert item.quantity == 0
    assert item.version == 20
    assert count_sales(file_database) == 20


@pytest.mark.slow
def test_parallel_sale_and_refund_keep_stock_consistent(file_database):
    data = seed_pos_data(file_database, quantity=5)
    service = SaleService(file_database)
    first = service.create_sale(
        drug_id=data.drug_id,
        store_id=data.store_id,
        customer_id=data.customer_id,
        cashier_id=data.cashier_id,
        quantity=2,
    )

    errors = []

    def refund():
        try:
            service.refund_sale(first.id)
        except Exception as e:
            errors.append(e)

    def sell():
        try:
            service.create_sale(
                drug_id=data.drug_id,
                store_id=data.store_id,
                customer_id=data.customer_id,
                cashier_id=data.cashier_id,
                quantity=3,
            )
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=refund), threading.Thread(target=sell)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=120)

    assert errors == []
    # 5 - 2 (first sale) + 2 (refund) - 3 (second sale)
    assert get_stock(file_database, data.item_id).quantity == 2
