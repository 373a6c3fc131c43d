import pytest
from structlog.testing import capture_logs

from errors import ProductNotFound, StoreUnavailable, ValidationError
from schemas import CartItem


def test_add_new_item(cart, store):
    lines = cart.add_item(3, 2, "prescription")
    assert len(lines) == 1
    assert lines[0].id == 1
    assert lines[0].product.model == "Durand"
    assert lines[0].quantity == 2
    assert lines[0].selected_lens_type == "prescription"


def test_adding_same_product_increments_quantity(cart):
    cart.add_item(1, 1)
    lines = cart.add_item(1, 2)
    assert len(lines) == 1
    assert lines[0].quantity == 3


def test_second_add_keeps_first_lens_type(cart):
    cart.add_item(1, 1, "blue-light")
    lines = cart.add_item(1, 1, "prescription")
    assert lines[0].selected_lens_type == "blue-light"


def test_line_ids_follow_max_plus_one(cart, store):
    cart.add_item(1)
    cart.add_item(2)
    cart.remove_item(1)
    lines = cart.add_item(3)
    assert [line.id for line in lines] == [2, 3]


@pytest.mark.parametrize("quantity", [0, -1])
def test_add_rejects_non_positive_quantity_before_store(cart, store, quantity):
    store.reads_fail = True
    with pytest.raises(ValidationError):
        cart.add_item(1, quantity)


def test_add_rejects_unknown_lens_type(cart):
    with pytest.raises(ValidationError):
        cart.add_item(1, 1, "polarized")


def test_add_unknown_product(cart):
    with pytest.raises(ProductNotFound):
        cart.add_item(42)


def test_update_quantity_sets_exact_value(cart):
    cart.add_item(1, 5)
    lines = cart.update_quantity(1, 2)
    assert lines[0].quantity == 2


def test_update_quantity_to_zero_removes(cart):
    cart.add_item(1, 2)
    cart.add_item(2, 3)
    before = cart.get_item_count()
    lines = cart.update_quantity(1, 0)
    assert [line.product_id for line in lines] == [2]
    assert cart.get_item_count() == before - 2


def test_update_missing_product_is_noop(cart):
    cart.add_item(1)
    assert [line.product_id for line in cart.update_quantity(2, 4)] == [1]


def test_remove_missing_product_is_noop(cart):
    assert cart.remove_item(1) == []


def test_clear_and_count(cart):
    cart.add_item(1, 2)
    cart.add_item(2, 1)
    assert cart.get_item_count() == 3
    assert cart.clear() == []
    assert cart.get_item_count() == 0


def test_stale_lines_are_dropped_from_view(cart, store):
    cart.add_item(1)
    store.cart_items[2] = CartItem(id=2, product_id=77, quantity=1)
    with capture_logs() as logs:
        lines = cart.get_all()
    assert [line.product_id for line in lines] == [1]
    assert {"event": "cart_line_stale", "log_level": "warning", "item_id": 2, "product_id": 77} in logs
    # the stored line is left alone
    assert 2 in store.cart_items


def test_reads_degrade_when_store_down(cart, store):
    cart.add_item(1)
    store.reads_fail = True
    assert cart.get_all() == []
    assert cart.get_item_count() == 0


def test_writes_propagate_store_failure(cart, store):
    store.writes_fail = True
    with pytest.raises(StoreUnavailable):
        cart.add_item(1)


def test_get_total_prices_resolved_lines(cart):
    cart.add_item(1, 1, "blue-light")  # 129 + 25
    total = cart.get_total()
    assert total.subtotal == 154.00
    assert total.shipping == 0
    assert total.tax == 12.32
    assert total.total == 166.32
