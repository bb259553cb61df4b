"""
Payment Service - Razorpay order creation and checkout signature verification.

Flow:
1. create_order: amount in rupees -> Razorpay order in paise; a `created` payment is stored.
2. Frontend completes Razorpay checkout and posts order id, payment id and signature.
3. verify_payment: HMAC-SHA256(order_id|payment_id, key_secret) must match the
   signature before the subscription is extended.
"""
import asyncio
import hashlib
import hmac
import logging
import os
import time
from datetime import datetime
from typing import Optional, Dict, Any

import httpx

from database import database
from errors import ValidationError, NotFoundError, ServiceUnavailableError, UpstreamError
from models.billing import Payment, PaymentStatus, ActivityAction
from models.user import SubscriptionPlan
from services.activity_service import activity_service
from services.email_service import email_service
from utils.dates import utcnow, add_months, add_years

logger = logging.getLogger(__name__)

RAZORPAY_API_BASE = "https://api.razorpay.com/v1"


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    return hmac.new(
        secret.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256
    ).hexdigest()


def subscription_end_for(plan: str, start: datetime) -> datetime:
    """End date for a plan bought at `start`; ValidationError on unknown plans."""
    if plan == SubscriptionPlan.MONTHLY.value:
        return add_months(start, 1)
    if plan == SubscriptionPlan.YEARLY.value:
        return add_years(start, 1)
    raise ValidationError("Invalid plan")


class PaymentService:
    """Razorpay orders and subscription activation."""

    @property
    def key_id(self) -> Optional[str]:
        return os.getenv("RAZORPAY_KEY_ID")

    @property
    def key_secret(self) -> Optional[str]:
        return os.getenv("RAZORPAY_KEY_SECRET")

    def _get_db(self):
        return database.get_db()

    def _require_configured(self):
        if not self.key_id or not self.key_secret:
            raise ServiceUnavailableError("Payment gateway is not configured")

    async def create_order(self, user: Dict[str, Any], amount: Optional[int], plan: Optional[str]) -> Dict[str, Any]:
        """Create a Razorpay order; returns the gateway's order object."""
        if not amount or not plan:
            raise ValidationError("Amount and plan are required")
        self._require_configured()

        payload = {
            "amount": int(amount) * 100,
            "currency": "INR",
            "receipt": f"receipt_{int(time.time() * 1000)}",
            "notes": {"user_id": user["user_id"], "plan": plan},
        }

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(
                    f"{RAZORPAY_API_BASE}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            logger.error(f"Razorpay order request failed: {e}")
            raise UpstreamError("Failed to create payment order")

        if response.status_code not in (200, 201):
            logger.error(f"Razorpay API error {response.status_code}: {response.text}")
            raise UpstreamError("Failed to create payment order")

        order = response.json()

        payment = Payment(
            user_id=user["user_id"],
            order_id=order["id"],
            plan=plan,
            amount=payload["amount"],
            currency=payload["currency"],
        )
        db = self._get_db()
        await db.payments.insert_one(payment.model_dump())

        logger.info(f"Razorpay order {order['id']} created for {user['user_id']} ({plan})")
        return order

    def signature_matches(self, order_id: str, payment_id: str, signature: str) -> bool:
        self._require_configured()
        expected = compute_signature(order_id, payment_id, self.key_secret)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    async def verify_payment(
        self,
        user_id: str,
        order_id: Optional[str],
        payment_id: Optional[str],
        signature: Optional[str],
        plan: Optional[str],
        request=None,
    ) -> Dict[str, Any]:
        """
        Verify a checkout and activate premium.

        Order of checks: required fields, signature, user, plan.
        """
        if not order_id or not payment_id or not signature or not plan:
            raise ValidationError("All payment details are required")

        db = self._get_db()

        if not self.signature_matches(order_id, payment_id, signature):
            logger.warning(f"Payment signature mismatch for order {order_id}")
            await db.payments.update_one(
                {"order_id": order_id, "user_id": user_id},
                {"$set": {"status": PaymentStatus.FAILED.value, "gateway_payment_id": payment_id}}
            )
            raise ValidationError("Payment verification failed")

        user = await db.users.find_one({"user_id": user_id}, {"_id": 0})
        if not user:
            raise NotFoundError("User not found")

        now = utcnow()
        end_date = subscription_end_for(plan, now)

        await db.users.update_one(
            {"user_id": user_id},
            {"$set": {
                "is_premium": True,
                "subscription_plan": plan,
                "subscription_end_date": end_date,
                "updated_at": now,
            }}
        )
        await db.payments.update_one(
            {"order_id": order_id},
            {"$set": {
                "status": PaymentStatus.VERIFIED.value,
                "gateway_payment_id": payment_id,
                "verified_at": now,
            }}
        )

        await activity_service.log(
            user_id,
            ActivityAction.PAYMENT,
            f"Subscribed to {plan} plan (payment {payment_id})",
            request,
        )

        asyncio.create_task(email_service.send_payment_receipt_email(
            recipient=user["email"],
            full_name=user.get("full_name", ""),
            user_id=user_id,
            plan=plan,
            payment_id=payment_id,
            order_id=order_id,
            end_date=end_date.strftime("%d %b %Y"),
        ))

        logger.info(f"Payment {payment_id} verified; {user_id} premium until {end_date.isoformat()}")
        return {
            "payment_id": payment_id,
            "subscription": {
                "isPremium": True,
                "subscriptionPlan": plan,
                "subscriptionEndDate": end_date,
            },
        }

    async def list_payments(self, page: int = 1, limit: int = 50, status: Optional[str] = None) -> Dict[str, Any]:
        """Admin listing, newest first, with payer details."""
        db = self._get_db()
        page = max(page, 1)
        limit = min(max(limit, 1), 200)
        query = {"status": status} if status else {}

        total = await db.payments.count_documents(query)
        payments = await db.payments.find(query, {"_id": 0}).sort(
            "created_at", -1
        ).skip((page - 1) * limit).limit(limit).to_list(limit)

        user_ids = list({p["user_id"] for p in payments})
        users = await db.users.find(
            {"user_id": {"$in": user_ids}},
            {"_id": 0, "user_id": 1, "full_name": 1, "email": 1}
        ).to_list(len(user_ids) or 1)
        by_id = {u["user_id"]: u for u in users}
        for payment in payments:
            payment["user"] = by_id.get(payment["user_id"])

        return {
            "payments": payments,
            "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
        }


payment_service = PaymentService()
