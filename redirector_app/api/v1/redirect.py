from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from redirector_app.config import settings
from redirector_app.dependencies import get_client_ip, get_url_service
from redirector_app.services.exceptions import RateLimitExceededError, URLGoneError, URLNotFoundError
from redirector_app.services.url_service import URLService

router = APIRouter(prefix="/urls", tags=["redirect"])


def _static_page(request: Request, page: str) -> str:
    return f"{str(request.base_url).rstrip('/')}/{page}"


@router.get("/{identifier}")
async def redirect_to_original_url(
    identifier: str,
    request: Request,
    client_ip: str = Depends(get_client_ip),
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL.

    Browsers get a redirect in every case: unknown and deleted links go to
    the not-found page, links over their rate limit go to the rate-limit
    page.
    """
    try:
        original_url = await url_service.redirect_url(
            identifier,
            ip=client_ip,
            agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
        )
    except (URLNotFoundError, URLGoneError):
        original_url = _static_page(request, settings.not_found_page)
    except RateLimitExceededError:
        original_url = _static_page(request, settings.rate_limit_page)

    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
