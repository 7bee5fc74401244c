from fastapi import APIRouter, Depends, HTTPException, status
from dependencies.rbac import require_feedback_write, require_feedback_received
from dependencies.store import get_store
from routers.auth.auth import get_current_user
from store.base import MarketplaceStore
from utils.errors import MarketplaceError, to_http_exception
from utils.response_helpers import safe_model_validate, safe_model_validate_list
from utils.session import SessionContext
from routers.feedback.schemas import (
    FeedbackCreate, FeedbackResponse, FeedbackListResponse, ReceivedFeedbackListResponse
)
from routers.feedback.helpers import feedback_helpers
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post("/", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    feedback_data: FeedbackCreate,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_feedback_write)
):
    """Rate a product (vendors only)"""
    try:
        feedback = await feedback_helpers.submit_feedback(
            store,
            current_user,
            feedback_data.product_id,
            feedback_data.rating,
            feedback_data.message
        )
        return safe_model_validate(FeedbackResponse, feedback)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error submitting feedback: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit feedback"
        )


@router.get("/received", response_model=ReceivedFeedbackListResponse)
async def get_received_feedback(
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_feedback_received)
):
    """Get feedback left on the current supplier's products"""
    try:
        feedbacks = await feedback_helpers.list_received_feedback(store, current_user)
        return ReceivedFeedbackListResponse(feedbacks=feedbacks, total=len(feedbacks))

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting received feedback: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load feedbacks"
        )


@router.get("/product/{product_id}", response_model=FeedbackListResponse)
async def get_product_feedback(
    product_id: str,
    store: MarketplaceStore = Depends(get_store)
):
    """Get all feedback for a product"""
    try:
        feedbacks = await feedback_helpers.list_product_feedback(store, product_id)
        return FeedbackListResponse(
            feedbacks=safe_model_validate_list(FeedbackResponse, feedbacks),
            total=len(feedbacks)
        )

    except Exception as e:
        logger.error(f"Error getting feedback for product {product_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load feedbacks"
        )
