import pytest
from datetime import datetime, timedelta, timezone
from core.exceptions import CancellationWindowExpiredError, NotFoundError, StateConflictError
from services.fulfillment_service import FulfillmentService
from services.order_service import OrderService

T0 = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)
CUSTOMER_ID = "cust-1"
SELLER_ID = "seller-1"


def test_cancel_pending_order(session, make_order):
    order = make_order(T0)

    cancelled, refunded = OrderService.cancel_order(session, order.order_id, CUSTOMER_ID, now=T0 + timedelta(minutes=1))

    assert cancelled.status == "Cancelled"
    assert refunded is False
    assert cancelled.status_timeline[-1].status == "Order Cancelled"


def test_cancel_at_window_boundary(session, make_order):
    order = make_order(T0)
    FulfillmentService.accept_order(session, order.order_id, SELLER_ID, now=T0 + timedelta(minutes=1))

    cancelled, _ = OrderService.cancel_order(session, order.order_id, CUSTOMER_ID,
                                             now=T0 + timedelta(seconds=360))
    assert cancelled.status == "Cancelled"


def test_cancel_just_after_window(session, make_order):
    order = make_order(T0)
    FulfillmentService.accept_order(session, order.order_id, SELLER_ID, now=T0 + timedelta(minutes=1))

    with pytest.raises(CancellationWindowExpiredError):
        OrderService.cancel_order(session, order.order_id, CUSTOMER_ID,
                                  now=T0 + timedelta(seconds=360, milliseconds=1))

    session.refresh(order)
    assert order.status == "Processing"


def test_cancel_twice_conflicts(session, make_order):
    order = make_order(T0)
    OrderService.cancel_order(session, order.order_id, CUSTOMER_ID, now=T0 + timedelta(minutes=1))

    with pytest.raises(StateConflictError):
        OrderService.cancel_order(session, order.order_id, CUSTOMER_ID, now=T0 + timedelta(minutes=2))


def test_cancel_out_for_delivery_conflicts(session, make_order):
    order = make_order(T0)
    FulfillmentService.accept_order(session, order.order_id, SELLER_ID, now=T0 + timedelta(minutes=1))
    FulfillmentService.mark_out_for_delivery(session, order.order_id, SELLER_ID, now=T0 + timedelta(minutes=2))

    with pytest.raises(StateConflictError):
        OrderService.cancel_order(session, order.order_id, CUSTOMER_ID, now=T0 + timedelta(minutes=3))


def test_cancel_after_auto_reject_conflicts(session, make_order):
    order = make_order(T0)

    with pytest.raises(StateConflictError):
        OrderService.cancel_order(session, order.order_id, CUSTOMER_ID, now=T0 + timedelta(minutes=4))

    session.refresh(order)
    assert order.seller_decision == "rejected"


def test_cancel_someone_elses_order_not_found(session, make_order):
    order = make_order(T0)

    with pytest.raises(NotFoundError):
        OrderService.cancel_order(session, order.order_id, "cust-2", now=T0 + timedelta(minutes=1))
