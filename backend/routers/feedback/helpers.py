from store.base import MarketplaceStore
from store.records import FeedbackRecord
from utils.errors import Forbidden, PersistenceError, ProductNotFound, ValidationError
from utils.session import SessionContext, require_session
from .schemas import ReceivedFeedbackResponse
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class FeedbackHelpers:
    """Helper functions for product feedback"""

    async def submit_feedback(
        self,
        store: MarketplaceStore,
        session: Optional[SessionContext],
        product_id: str,
        rating: int,
        message: Optional[str] = None
    ) -> FeedbackRecord:
        session = require_session(session)
        if not session.is_vendor:
            raise Forbidden("Only vendors can leave feedback")
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError("Please select a rating between 1 and 5")

        product = await store.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        try:
            feedback = await store.insert_feedback({
                "product_id": product.id,
                "vendor_id": session.user_id,
                "supplier_id": product.supplier_id,
                "message": message.strip() if message and message.strip() else None,
                "rating": rating
            })
        except Exception as e:
            logger.error(f"Error submitting feedback for product {product_id}: {str(e)}")
            raise PersistenceError(step="insert_feedback", message="Failed to submit feedback")

        logger.info(f"Vendor {session.user_id} rated product {product_id} {rating}/5")
        return feedback

    async def list_received_feedback(self, store: MarketplaceStore, session: Optional[SessionContext]) -> List[ReceivedFeedbackResponse]:
        """Feedback left on the supplier's products, newest first"""
        session = require_session(session)
        if not session.is_supplier:
            raise Forbidden("Only suppliers receive feedback")

        feedbacks = await store.list_feedback(supplier_id=session.user_id)
        if not feedbacks:
            return []

        product_ids = {feedback.product_id for feedback in feedbacks}
        vendor_ids = {feedback.vendor_id for feedback in feedbacks}
        try:
            products = {product.id: product for product in await store.get_products(product_ids)}
            vendors = {profile.user_id: profile for profile in await store.get_profiles(vendor_ids)}
        except Exception as e:
            logger.warning(f"Error fetching feedback details, using placeholders: {str(e)}")
            products, vendors = {}, {}

        received = []
        for feedback in feedbacks:
            entry = ReceivedFeedbackResponse(**feedback.model_dump())
            product = products.get(feedback.product_id)
            vendor = vendors.get(feedback.vendor_id)
            if product:
                entry.product_name = product.name
            if vendor and vendor.full_name:
                entry.vendor_name = vendor.full_name
            received.append(entry)
        return received

    async def list_product_feedback(self, store: MarketplaceStore, product_id: str) -> List[FeedbackRecord]:
        return await store.list_feedback(product_id=product_id)

feedback_helpers = FeedbackHelpers()
