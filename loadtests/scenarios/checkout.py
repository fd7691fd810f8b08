"""Checkout load test scenarios.

CheckoutUser walks the cart-to-order path on items it registers itself.
CheckoutContentionUser has every user fight over one small batch of a hot
item, so the only acceptable failures are InsufficientStock and
ConcurrencyConflict, and the stock must never go negative.
"""

import random

import requests
from locust import HttpUser, SequentialTaskSet, between, events, task

from loadtests.data_generators import cart_line, idempotency_key, item_data, member_id, restock_data
from loadtests.helpers.response import error_code, extract_error_detail
from loadtests.helpers.state import MemberState

# Errors that are the expected outcome of contention, not failures
_EXPECTED_REJECTIONS = {"InsufficientStock", "ConcurrencyConflict", "EmptyCart"}

HOT_ITEM: dict = {}


class CartToOrderJourney(SequentialTaskSet):
    """Register Items -> Add To Cart -> Review Cart -> Checkout -> Retry With Same Key."""

    def on_start(self):
        self.state = MemberState(member_id=member_id(), idempotency_key=idempotency_key())

    @task
    def register_items(self):
        for _ in range(random.randint(1, 3)):
            with self.client.post(
                "/items", json=item_data(quantity=50), catch_response=True, name="POST /items"
            ) as resp:
                if resp.status_code == 201:
                    self.state.item_ids.append(resp.json()["item_id"])
                else:
                    resp.failure(f"Register item failed: {resp.status_code}: {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def add_to_cart(self):
        for item_id in self.state.item_ids:
            with self.client.post(
                "/cart/items",
                json=cart_line(self.state.member_id, item_id),
                catch_response=True,
                name="POST /cart/items",
            ) as resp:
                if resp.status_code != 201:
                    resp.failure(f"Add to cart failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def review_cart(self):
        self.client.get(f"/cart/{self.state.member_id}", name="GET /cart/{member_id}")

    @task
    def checkout(self):
        with self.client.post(
            f"/checkout/{self.state.member_id}",
            headers={"Idempotency-Key": self.state.idempotency_key},
            catch_response=True,
            name="POST /checkout/{member_id}",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_ids.append(resp.json()["order_id"])
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def retry_checkout(self):
        """A double-click must return the same order."""
        with self.client.post(
            f"/checkout/{self.state.member_id}",
            headers={"Idempotency-Key": self.state.idempotency_key},
            catch_response=True,
            name="POST /checkout/{member_id} (retry)",
        ) as resp:
            if resp.status_code != 201 or resp.json()["order_id"] != self.state.order_ids[-1]:
                resp.failure("Retry with the same idempotency key did not return the original order")
        self.interrupt()


class OrderCancellationJourney(SequentialTaskSet):
    """Register Items -> Add To Cart -> Checkout -> Cancel, expecting the stock back."""

    on_start = CartToOrderJourney.on_start

    def cancel_order(self):
        with self.client.post(
            f"/orders/{self.state.order_ids[-1]}/cancel",
            json={"performed_by": "staff-1", "reason": "Load test cancellation"},
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Cancel failed: {resp.status_code}: {extract_error_detail(resp)}")
        self.interrupt()

    tasks = [
        CartToOrderJourney.register_items,
        CartToOrderJourney.add_to_cart,
        CartToOrderJourney.checkout,
        cancel_order,
    ]


class CheckoutUser(HttpUser):
    wait_time = between(1.0, 3.0)
    tasks = {CartToOrderJourney: 4, OrderCancellationJourney: 1}


@events.test_start.add_listener
def create_hot_item(environment, **_kwargs):
    if environment.host is None:
        return
    resp = requests.post(
        f"{environment.host}/items",
        json=item_data(quantity=25, threshold=5) | {"name": "Limited Edition Lifting Belt"},
        timeout=10,
    )
    if resp.status_code == 201:
        HOT_ITEM.update(resp.json())


class CheckoutContentionUser(HttpUser):
    """Many members racing for the last units of one item."""

    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.member = member_id()

    @task(10)
    def grab_the_hot_item(self):
        if not HOT_ITEM:
            return
        self.client.post(
            "/cart/items",
            json=cart_line(self.member, HOT_ITEM["item_id"], quantity=1),
            name="[CONTENTION] POST /cart/items",
        )
        with self.client.post(
            f"/checkout/{self.member}",
            headers={"Idempotency-Key": idempotency_key()},
            catch_response=True,
            name="[CONTENTION] POST /checkout/{member_id}",
        ) as resp:
            if resp.status_code == 201 or error_code(resp) in _EXPECTED_REJECTIONS:
                resp.success()
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task(1)
    def restock(self):
        if not HOT_ITEM:
            return
        self.client.put(
            f"/stock/{HOT_ITEM['item_id']}",
            json=restock_data(quantity=5),
            name="[CONTENTION] PUT /stock/{id} (increment)",
        )

    @task(2)
    def check_never_negative(self):
        if not HOT_ITEM:
            return
        with self.client.get(
            f"/stock/{HOT_ITEM['item_id']}/reconciliation",
            catch_response=True,
            name="[CONTENTION] GET /stock/{id}/reconciliation",
        ) as resp:
            if resp.status_code == 200 and not resp.json()["consistent"]:
                resp.failure(f"Ledger inconsistent: {resp.json()['problems']}")
