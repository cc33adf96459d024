async def test_verify_payment(client, gateway, place_order, customer_headers):
    checkout = (await place_order(payment_method="Razorpay"))["order"]

    response = await client.post("/orders/verify-payment", json={
        "razorpayOrderId": checkout["id"],
        "razorpayPaymentId": "pay_001",
        "razorpaySignature": gateway.sign(checkout["id"], "pay_001"),
        "orderId": checkout["orderId"]
    }, headers=customer_headers)

    assert response.status_code == 200
    order = response.json()["order"]
    assert order["paymentStatus"] == "paid"
    assert order["statusTimeline"][-1]["status"] == "Payment Confirmed"


async def test_verify_payment_bad_signature(client, place_order, customer_headers):
    checkout = (await place_order(payment_method="Razorpay"))["order"]

    response = await client.post("/orders/verify-payment", json={
        "razorpay_order_id": checkout["id"],
        "razorpay_payment_id": "pay_001",
        "razorpay_signature": "forged",
        "order_id": checkout["orderId"]
    }, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "PaymentVerificationError"


async def test_payment_history(client, place_order, customer_headers):
    first = (await place_order())["orderId"]
    second = (await place_order(payment_method="UPI"))["order"]["orderId"]

    response = await client.get("/payments/history", headers=customer_headers)

    assert response.status_code == 200
    payments = response.json()["payments"]
    assert {p["orderId"] for p in payments} == {first, second}
    assert {p["amount"] for p in payments} == {500.0}


async def test_verify_payment_after_cancel_refunds(client, gateway, place_order, customer_headers):
    checkout = (await place_order(payment_method="Razorpay"))["order"]
    await client.put(f"/orders/cancel/{checkout['orderId']}", json={"userId": "cust-1"}, headers=customer_headers)

    response = await client.post("/orders/verify-payment", json={
        "razorpayOrderId": checkout["id"],
        "razorpayPaymentId": "pay_001",
        "razorpaySignature": gateway.sign(checkout["id"], "pay_001"),
        "orderId": checkout["orderId"]
    }, headers=customer_headers)

    assert response.status_code == 409
    assert response.json()["error"] == "StateConflictError"

    response = await client.get(f"/orders/status/{checkout['orderId']}", headers=customer_headers)
    order = response.json()["order"]
    assert order["status"] == "Cancelled"
    assert order["paymentStatus"] == "refunded"
