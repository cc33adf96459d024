SELLER_BODY = {"sellerId": "seller-1"}


async def get_otp(client, order_id, customer_headers):
    response = await client.get(f"/orders/status/{order_id}", headers=customer_headers)
    return response.json()["order"]["deliveryOtp"]


async def test_full_cod_flow(client, place_order, customer_headers, seller_headers):
    order_id = (await place_order())["orderId"]

    response = await client.get("/orders/seller/pending/seller-1", headers=seller_headers)
    assert [o["orderId"] for o in response.json()["orders"]] == [order_id]

    response = await client.put(f"/orders/seller/accept/{order_id}", json=SELLER_BODY, headers=seller_headers)
    assert response.status_code == 200
    assert response.json()["order"]["sellerDecision"] == "accepted"

    response = await client.get("/orders/seller/accepted/seller-1", headers=seller_headers)
    assert [o["orderId"] for o in response.json()["orders"]] == [order_id]

    response = await client.put(f"/orders/seller/out-for-delivery/{order_id}", json=SELLER_BODY,
                                headers=seller_headers)
    assert response.status_code == 200
    assert response.json()["order"]["status"] == "Under Delivery"

    otp = await get_otp(client, order_id, customer_headers)
    wrong = "111111" if otp != "111111" else "222222"

    response = await client.put(f"/orders/seller/deliver/{order_id}", json={**SELLER_BODY, "otp": wrong},
                                headers=seller_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "OTPMismatchError"

    response = await client.put(f"/orders/seller/deliver/{order_id}", json={**SELLER_BODY, "otp": otp},
                                headers=seller_headers)
    assert response.status_code == 200
    order = response.json()["order"]
    assert order["status"] == "Completed"
    assert order["paymentStatus"] == "pending"

    response = await client.put(f"/orders/seller/deliver/{order_id}", json={**SELLER_BODY, "otp": otp},
                                headers=seller_headers)
    assert response.status_code == 409

    response = await client.put(f"/orders/seller/confirm-cash/{order_id}", json=SELLER_BODY, headers=seller_headers)
    assert response.status_code == 200
    assert response.json()["order"]["paymentStatus"] == "paid"

    timeline = [e["status"] for e in response.json()["order"]["statusTimeline"]]
    assert timeline == ["Order Placed", "Order Confirmed", "Out for Delivery", "Delivered", "Cash Collected"]


async def test_reject_order(client, place_order, seller_headers):
    order_id = (await place_order())["orderId"]

    response = await client.put(f"/orders/seller/reject/{order_id}", json=SELLER_BODY, headers=seller_headers)

    assert response.status_code == 200
    order = response.json()["order"]
    assert order["status"] == "Cancelled"
    assert order["sellerDecision"] == "rejected"


async def test_dispatch_before_accept_conflicts(client, place_order, seller_headers):
    order_id = (await place_order())["orderId"]

    response = await client.put(f"/orders/seller/out-for-delivery/{order_id}", json=SELLER_BODY,
                                headers=seller_headers)

    assert response.status_code == 409


async def test_customer_cannot_use_seller_routes(client, place_order, customer_headers):
    order_id = (await place_order())["orderId"]

    response = await client.put(f"/orders/seller/accept/{order_id}", json={"sellerId": "cust-1"},
                                headers=customer_headers)

    assert response.status_code == 403


async def test_seller_cannot_act_for_another_seller(client, place_order, headers_for):
    order_id = (await place_order())["orderId"]

    response = await client.put(f"/orders/seller/accept/{order_id}", json=SELLER_BODY,
                                headers=headers_for("seller-2", "seller"))

    assert response.status_code == 403


async def test_other_seller_order_not_found(client, place_order, headers_for):
    order_id = (await place_order())["orderId"]

    response = await client.put(f"/orders/seller/accept/{order_id}", json={"sellerId": "seller-2"},
                                headers=headers_for("seller-2", "seller"))

    assert response.status_code == 404


async def test_malformed_otp_rejected(client, place_order, seller_headers):
    order_id = (await place_order())["orderId"]

    response = await client.put(f"/orders/seller/deliver/{order_id}", json={**SELLER_BODY, "otp": "12"},
                                headers=seller_headers)

    assert response.status_code == 422


async def test_non_ascii_otp_rejected(client, place_order, seller_headers):
    order_id = (await place_order())["orderId"]
    await client.put(f"/orders/seller/accept/{order_id}", json=SELLER_BODY, headers=seller_headers)
    await client.put(f"/orders/seller/out-for-delivery/{order_id}", json=SELLER_BODY, headers=seller_headers)

    response = await client.put(f"/orders/seller/deliver/{order_id}", json={**SELLER_BODY, "otp": "١٢٣٤٥٦"},
                                headers=seller_headers)

    assert response.status_code == 422

    response = await client.get(f"/orders/status/{order_id}", headers=seller_headers)
    assert response.json()["order"]["status"] == "Under Delivery"
