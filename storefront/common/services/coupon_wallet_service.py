from typing import Dict, List
from uuid import uuid4
from sqlalchemy.exc import SQLAlchemyError
from ..db.session import get_session
from ..errors import CartStoreError, CartValidationError
from ..models.coupon import Coupon, UserCoupon
from ..utils.validators import normalize_coupon_code
from .coupon_service import MSG_EMPTY_CODE, MSG_INVALID
from .logging import log_event


MSG_ALREADY_SAVED = "This coupon is already in your account."
MSG_SAVED = "Coupon added to your account."


class CouponWalletService:
    """Coupons a customer has saved to their account."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def add(self, user_id: str, code: str) -> Dict:
        if not user_id:
            raise CartValidationError("user_id required")
        normalized = normalize_coupon_code(code)
        if not normalized:
            return {"ok": False, "message": MSG_EMPTY_CODE}
        try:
            with self._session_factory() as session:
                coupon = (
                    session.query(Coupon)
                    .filter(Coupon.code == normalized, Coupon.is_active.is_(True))
                    .first()
                )
                if not coupon:
                    return {"ok": False, "message": MSG_INVALID}
                existing = (
                    session.query(UserCoupon)
                    .filter(UserCoupon.user_id == user_id, UserCoupon.coupon_id == coupon.id)
                    .first()
                )
                if existing:
                    return {"ok": False, "message": MSG_ALREADY_SAVED}
                session.add(UserCoupon(id=str(uuid4()), user_id=user_id, coupon_id=coupon.id))
                coupon_id = coupon.id
        except SQLAlchemyError as exc:
            log_event("error", "wallet.add_failed", user_id=user_id, code=normalized, error=str(exc))
            raise CartStoreError("could not save coupon", cause=exc) from exc
        log_event("info", "wallet.coupon_added", user_id=user_id, coupon_id=coupon_id)
        return {"ok": True, "message": MSG_SAVED, "code": normalized}

    def list(self, user_id: str) -> List[Dict]:
        if not user_id:
            raise CartValidationError("user_id required")
        try:
            with self._session_factory() as session:
                rows = (
                    session.query(UserCoupon, Coupon)
                    .join(Coupon, Coupon.id == UserCoupon.coupon_id)
                    .filter(UserCoupon.user_id == user_id)
                    .order_by(UserCoupon.created_at.desc())
                    .all()
                )
                return [
                    {
                        "id": uc.id,
                        "saved_at": uc.created_at.isoformat() if uc.created_at else None,
                        "code": c.code,
                        "description": c.description,
                        "discount_type": c.discount_type,
                        "discount_value": float(c.discount_value or 0),
                        "min_purchase_amount": float(c.min_purchase_amount) if c.min_purchase_amount is not None else None,
                        "is_active": bool(c.is_active),
                    }
                    for uc, c in rows
                ]
        except SQLAlchemyError as exc:
            raise CartStoreError("could not load saved coupons", cause=exc) from exc
