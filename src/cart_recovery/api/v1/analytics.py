"""Analytics API endpoints for recent shopper activity."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from cart_recovery.dependencies import get_repository
from cart_recovery.infrastructure.database.repository import CartRecoveryRepository

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class ProductViewEntry(BaseModel):
    """One product view of a known shopper."""

    product_id: str
    product_name: str
    timestamp: str
    user_email: str


class ProductViewsResponse(BaseModel):
    data: list[ProductViewEntry]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/product-views", response_model=ProductViewsResponse)
async def get_product_views(
    limit: Annotated[int, Query(ge=1, le=100)] = 100,
    repository: CartRecoveryRepository = Depends(get_repository),
) -> ProductViewsResponse:
    """
    Most recent product views of identified shoppers, newest first.

    Anonymous views are not listed.
    """
    views = await repository.list_latest_views(limit)
    return ProductViewsResponse(
        data=[
            ProductViewEntry(
                product_id=view.product_id,
                product_name=view.product_name,
                timestamp=view.timestamp.isoformat(),
                user_email=view.email,
            )
            for view in views
        ]
    )
