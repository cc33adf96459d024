from fastapi import APIRouter, Request, Query, status
from utils.deps import user_dependency, db_dependency
from schemas.order_schemas import NotificationOut
from services.notification_service import NotificationService
from middleware.rate_limiter import limiter


router = APIRouter(
    prefix="/notifications",
    tags=["notifications"]
)


@router.get("", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_notifications(request: Request, user: user_dependency, db: db_dependency,
                            limit: int = Query(10, ge=1, le=50), page: int = Query(1, ge=1)):
    result = NotificationService.get_notifications(db, user.get("user_id"), limit=limit, page=page)

    return {
        "success": True,
        "notifications": [NotificationOut.model_validate(n) for n in result["notifications"]],
        "total": result["total"],
        "page": result["page"],
        "totalPages": result["total_pages"]
    }


@router.get("/unread-count", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def get_unread_count(request: Request, user: user_dependency, db: db_dependency):
    return {"success": True, "count": NotificationService.get_unread_count(db, user.get("user_id"))}


@router.put("/read-all", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def mark_all_as_read(request: Request, user: user_dependency, db: db_dependency):
    updated = NotificationService.mark_all_as_read(db, user.get("user_id"))
    return {"success": True, "updated": updated}


@router.put("/{notification_id}/read", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def mark_as_read(request: Request, notification_id: int, user: user_dependency, db: db_dependency):
    notification = NotificationService.mark_as_read(db, notification_id, user.get("user_id"))
    return {"success": True, "notification": NotificationOut.model_validate(notification)}
