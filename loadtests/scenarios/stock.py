"""Stock ledger load test scenarios.

A stateful SequentialTaskSet journey covering item registration, supplier
deliveries, write-offs and the ledger queries staff run afterwards.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import item_data, restock_data, write_off_data
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ItemState


class StockLedgerJourney(SequentialTaskSet):
    """Register Item -> Receive Stock -> Write Off -> Ledger -> Reconcile."""

    def on_start(self):
        self.state = ItemState()

    @task
    def register_item(self):
        payload = item_data()
        with self.client.post("/items", json=payload, catch_response=True, name="POST /items") as resp:
            if resp.status_code == 201:
                self.state.item_id = resp.json()["item_id"]
                self.state.expected_quantity = payload["quantity"]
            else:
                resp.failure(f"Register item failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def receive_stock(self):
        payload = restock_data()
        with self.client.put(
            f"/stock/{self.state.item_id}",
            json=payload,
            catch_response=True,
            name="PUT /stock/{id} (increment)",
        ) as resp:
            if resp.status_code == 200:
                self.state.expected_quantity += payload["quantity"]
            else:
                resp.failure(f"Receive stock failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def write_off(self):
        quantity = random.randint(1, 3)
        with self.client.put(
            f"/stock/{self.state.item_id}",
            json=write_off_data(quantity),
            catch_response=True,
            name="PUT /stock/{id} (decrement)",
        ) as resp:
            if resp.status_code == 200:
                self.state.expected_quantity -= quantity
            else:
                resp.failure(f"Write-off failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def read_ledger(self):
        self.client.get(f"/stock/{self.state.item_id}/ledger", name="GET /stock/{id}/ledger")
        self.client.get(f"/stock/{self.state.item_id}/ledger/summary", name="GET /stock/{id}/ledger/summary")

    @task
    def reconcile(self):
        with self.client.get(
            f"/stock/{self.state.item_id}/reconciliation",
            catch_response=True,
            name="GET /stock/{id}/reconciliation",
        ) as resp:
            body = resp.json() if resp.status_code == 200 else {}
            if not body.get("consistent"):
                resp.failure(f"Ledger inconsistent: {body.get('problems')}")
            elif body["recorded_quantity"] != self.state.expected_quantity:
                resp.failure(f"Expected {self.state.expected_quantity}, ledger shows {body['recorded_quantity']}")
        self.interrupt()


class LowStockReportJourney(SequentialTaskSet):
    """Staff checking what needs reordering."""

    @task
    def low_stock(self):
        self.client.get("/stock/low", name="GET /stock/low")

    @task
    def report(self):
        self.client.get("/stock/low/report", name="GET /stock/low/report")
        self.interrupt()


class StockLedgerUser(HttpUser):
    wait_time = between(0.5, 2.0)
    tasks = {StockLedgerJourney: 4, LowStockReportJourney: 1}
