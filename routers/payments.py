from fastapi import APIRouter, Request, status
from utils.deps import user_dependency, db_dependency
from schemas.order_schemas import PaymentOut
from services.payment_service import PaymentService
from middleware.rate_limiter import limiter


router = APIRouter(
    prefix="/payments",
    tags=["payments"]
)


@router.get("/history", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def get_payment_history(request: Request, user: user_dependency, db: db_dependency):
    """
    Payment records of the current user, newest first.
    """
    payments = PaymentService.get_payment_history(db, user.get("user_id"))
    return {
        "success": True,
        "payments": [PaymentOut.model_validate(payment) for payment in payments]
    }
