"""Mixed workload scenario.

Combines stock, low-stock reporting and checkout journeys with weights
that model a gym front desk: mostly member checkouts, with staff receiving
deliveries and checking what needs reordering in between.
"""

from locust import HttpUser, between

from loadtests.scenarios.checkout import CartToOrderJourney, OrderCancellationJourney
from loadtests.scenarios.stock import LowStockReportJourney, StockLedgerJourney


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload.

    Checkout (65%):
    - Cart to order with an idempotent retry
    - Order cancellation with restock

    Stock (35%):
    - Delivery, write-off and ledger reconciliation
    - Low-stock list and report
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        CartToOrderJourney: 55,
        OrderCancellationJourney: 10,
        StockLedgerJourney: 25,
        LowStockReportJourney: 10,
    }
