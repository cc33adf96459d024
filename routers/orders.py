from fastapi import APIRouter, Request, status
from utils.deps import (user_dependency, seller_dependency, delivery_dependency, db_dependency,
                        gateway_dependency, ensure_acting_for)
from core.config import settings
from core.exceptions import PermissionDeniedError
from schemas.order_schemas import (CreateOrderRequest, CancelOrderRequest, SellerActionRequest,
                                   DeliverOrderRequest, DeliveryPickupRequest, VerifyPaymentRequest,
                                   GroupedOrdersOut, serialize_order)
from services.order_service import OrderService
from services.fulfillment_service import FulfillmentService
from services.payment_service import PaymentService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/orders",
    tags=["orders"]
)


# ---------- customer ----------

@router.post("/create", status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_order(request: Request, body: CreateOrderRequest, user: user_dependency,
                 db: db_dependency, gateway: gateway_dependency):
    """
    Place an order. COD orders are confirmed straight away; online payments
    get a Razorpay order to pay against and are verified via /verify-payment.
    """
    ensure_acting_for(user, body.user_id)

    order, gateway_order = OrderService.create_order(db, gateway, body)

    if gateway_order is None:
        return {
            "success": True,
            "orderId": order.order_id,
            "order": serialize_order(order, include_otp=True),
            "message": "Order placed successfully"
        }

    return {
        "success": True,
        "order": {
            "id": gateway_order["id"],
            "amount": gateway_order["amount"],
            "currency": gateway_order["currency"],
            "orderId": order.order_id,
            "key": settings.RAZORPAY_KEY_ID
        }
    }


@router.post("/verify-payment", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def verify_payment(request: Request, body: VerifyPaymentRequest, user: user_dependency,
                         db: db_dependency, gateway: gateway_dependency):
    order = OrderService.get_order(db, body.order_id)
    ensure_acting_for(user, order.user_id)

    order = PaymentService.verify_payment(db, gateway, body)

    return {
        "success": True,
        "orderId": order.order_id,
        "order": serialize_order(order, include_otp=True),
        "message": "Payment verified and order confirmed"
    }


@router.get("/status/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_order_status(request: Request, order_id: str, user: user_dependency, db: db_dependency):
    """
    Current order with its timeline. The delivery OTP is only shown to the
    customer who placed the order.
    """
    order = OrderService.get_order(db, order_id)

    is_owner = order.user_id == user.get("user_id")
    is_seller = user.get("user_role") == "seller" and order.seller_id == user.get("user_id")
    is_partner = user.get("user_role") == "delivery" and order.delivery_partner_id == user.get("user_id")
    if not (is_owner or is_seller or is_partner or user.get("user_role") == "admin"):
        logger.warning("Order status access denied", extra={"order_id": order_id, "user_id": user.get("user_id")})
        raise PermissionDeniedError()

    return {
        "success": True,
        "order": serialize_order(order, include_otp=is_owner)
    }


@router.get("/list/{user_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def list_user_orders(request: Request, user_id: str, user: user_dependency, db: db_dependency):
    ensure_acting_for(user, user_id)

    grouped = OrderService.list_user_orders(db, user_id)
    include_otp = user.get("user_id") == user_id

    return {
        "success": True,
        "orders": GroupedOrdersOut(**{
            bucket: [serialize_order(order, include_otp=include_otp) for order in orders]
            for bucket, orders in grouped.items()
        })
    }


@router.put("/cancel/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("5/minute")
async def cancel_order(request: Request, order_id: str, body: CancelOrderRequest,
                       user: user_dependency, db: db_dependency):
    ensure_acting_for(user, body.user_id)

    order, refunded = OrderService.cancel_order(db, order_id, body.user_id)

    return {
        "success": True,
        "order": {
            "orderId": order.order_id,
            "status": order.status,
            "refundProcessed": refunded
        },
        "message": "Order cancelled successfully"
    }


# ---------- seller ----------

@router.get("/seller/pending/{seller_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def list_pending_orders(request: Request, seller_id: str, user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, seller_id)

    orders = OrderService.list_seller_pending(db, seller_id)
    return {"success": True, "orders": [serialize_order(order) for order in orders]}


@router.get("/seller/accepted/{seller_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def list_accepted_orders(request: Request, seller_id: str, user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, seller_id)

    orders = OrderService.list_seller_accepted(db, seller_id)
    return {"success": True, "orders": [serialize_order(order) for order in orders]}


@router.put("/seller/accept/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def accept_order(request: Request, order_id: str, body: SellerActionRequest,
                       user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, body.seller_id)

    order = FulfillmentService.accept_order(db, order_id, body.seller_id)
    return {"success": True, "order": serialize_order(order), "message": "Order accepted successfully"}


@router.put("/seller/reject/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def reject_order(request: Request, order_id: str, body: SellerActionRequest,
                       user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, body.seller_id)

    order = FulfillmentService.reject_order(db, order_id, body.seller_id)
    return {"success": True, "order": serialize_order(order), "message": "Order rejected successfully"}


@router.put("/seller/out-for-delivery/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def mark_out_for_delivery(request: Request, order_id: str, body: SellerActionRequest,
                                user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, body.seller_id)

    order = FulfillmentService.mark_out_for_delivery(db, order_id, body.seller_id)
    return {
        "success": True,
        "order": serialize_order(order),
        "message": "Order status updated to out for delivery"
    }


@router.put("/seller/deliver/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def mark_delivered(request: Request, order_id: str, body: DeliverOrderRequest,
                         user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, body.seller_id)

    order = FulfillmentService.mark_delivered(db, order_id, body.seller_id, body.otp)
    return {"success": True, "order": serialize_order(order), "message": "Order delivered successfully"}


@router.put("/seller/confirm-cash/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def confirm_cash_collected(request: Request, order_id: str, body: SellerActionRequest,
                                 user: seller_dependency, db: db_dependency):
    ensure_acting_for(user, body.seller_id)

    order = FulfillmentService.confirm_cash_collected(db, order_id, body.seller_id)
    return {"success": True, "order": serialize_order(order), "message": "Cash payment recorded"}


# ---------- delivery partner ----------

@router.get("/delivery/available", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def list_available_deliveries(request: Request, user: delivery_dependency, db: db_dependency):
    """
    Accepted orders nobody has picked up yet, newest first.
    """
    orders = OrderService.list_available_for_delivery(db)
    return {"success": True, "orders": [serialize_order(order) for order in orders]}


@router.get("/delivery/assigned/{partner_id}", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def list_assigned_deliveries(request: Request, partner_id: str, user: delivery_dependency, db: db_dependency):
    ensure_acting_for(user, partner_id)

    orders = OrderService.list_partner_orders(db, partner_id)
    return {"success": True, "orders": [serialize_order(order) for order in orders]}


@router.put("/delivery/accept/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def accept_for_delivery(request: Request, order_id: str, body: DeliveryPickupRequest,
                              user: delivery_dependency, db: db_dependency):
    ensure_acting_for(user, body.delivery_partner_id)

    order = FulfillmentService.assign_delivery_partner(db, order_id, body.delivery_partner_id)
    return {"success": True, "order": serialize_order(order), "message": "Order accepted for delivery"}
