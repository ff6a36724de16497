"""GET /v1/contacts - Search the user's contacts to pick split participants"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request

from splitpay_gateway.api.dependencies import get_checkout_client, get_request_id
from splitpay_gateway.api.errors import to_http_exception
from splitpay_gateway.api.v1.schemas import ContactPageResponse, ParticipantSchema
from splitpay_gateway.domain.exceptions import CheckoutAPIError
from splitpay_gateway.infrastructure.clients.checkout import CheckoutClient

router = APIRouter()


@router.get("/contacts", response_model=ContactPageResponse)
async def search_contacts(
    request: Request,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search term"),
    exclude: List[str] = Query([], description="User ids to leave out"),
    checkout_client: CheckoutClient = Depends(get_checkout_client),
):
    """
    Page through contacts.

    Returns:
        Contacts for the requested page and the next page number, if any
    """
    try:
        contact_page = await checkout_client.search_contacts(
            page=page, size=size, search_term=search, exclude_user_ids=exclude
        )
    except CheckoutAPIError as e:
        logging.error(f"Contacts lookup failed: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)

    return ContactPageResponse(
        contacts=[ParticipantSchema.from_domain(c) for c in contact_page.contacts],
        page_number=contact_page.page_number,
        total_pages=contact_page.total_pages,
        next_page=contact_page.next_page,
    )
