"""
Payment Routes - Razorpay checkout and subscription status.

Endpoints:
- POST /api/v1/payment/create-order - Create a Razorpay order
- POST /api/v1/payment/verify - Verify checkout signature and activate premium
- GET  /api/v1/payment/status - Subscription status
- GET  /api/v1/payment/usage - Monthly usage against free-tier limits
"""
from fastapi import APIRouter, Depends, Request
import logging

from middleware import require_auth
from models.billing import CreateOrderRequest, VerifyPaymentRequest
from services.payment_service import payment_service
from services.usage_service import usage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/payment", tags=["Payment"])


@router.post("/create-order")
async def create_order(data: CreateOrderRequest, current_user: dict = Depends(require_auth)):
    order = await payment_service.create_order(current_user, data.amount, data.plan)
    return {
        "success": True,
        "message": "Order created successfully",
        "order": order,
        "keyId": payment_service.key_id,
    }


@router.post("/verify")
async def verify_payment(data: VerifyPaymentRequest, request: Request, current_user: dict = Depends(require_auth)):
    result = await payment_service.verify_payment(
        current_user["user_id"],
        order_id=data.razorpay_order_id,
        payment_id=data.razorpay_payment_id,
        signature=data.razorpay_signature,
        plan=data.plan,
        request=request,
    )
    return {"success": True, "message": "Payment verified successfully", **result}


@router.get("/status")
async def subscription_status(current_user: dict = Depends(require_auth)):
    status = await usage_service.get_subscription_status(current_user)
    return {"success": True, "message": "Subscription status fetched", "subscription": status}


@router.get("/usage")
async def usage_stats(current_user: dict = Depends(require_auth)):
    usage = await usage_service.get_usage_stats(current_user)
    return {"success": True, "message": "Usage fetched successfully", "usage": usage}
