import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def store_bed():
    from store.domain import store

    bed = DomainFixture(store)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(store_bed):
    from store.alerts.channel import reset_channel
    from store.utils.locks import locks

    with store_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    locks.reset()
    reset_channel()


@pytest.fixture()
def alert_channel():
    """Capture low-stock alerts and digests in memory."""
    from store.alerts.channel import use_channel
    from store.alerts.channel.fake_channel import FakeAlertChannel

    with use_channel(FakeAlertChannel()) as channel:
        yield channel


@pytest.fixture()
def make_item():
    """Register an item through the catalog service and return it."""
    from store.stock import catalog

    def _make_item(name="Whey Protein 2kg", quantity=10, low_stock_threshold=3, price=49.99, **extra):
        return catalog.register_item(
            name=name,
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            price=price,
            **extra,
        )

    return _make_item


@pytest.fixture()
def fill_cart():
    """Add ``{item_id: quantity}`` lines to a member's cart."""
    from store.cart.items import AddToCart

    def _fill_cart(member_id, lines):
        for item_id, quantity in lines.items():
            current_domain.process(
                AddToCart(member_id=member_id, item_id=str(item_id), quantity=quantity),
                asynchronous=False,
            )

    return _fill_cart
