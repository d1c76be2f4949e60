from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import PlainTextResponse

from redirector_app.schemas.url import AliasUpdate, URLCreate, URLWithStats
from redirector_app.services.exceptions import AliasConflictError, URLNotFoundError
from redirector_app.services.url_service import URLService
from redirector_app.dependencies import get_url_service

router = APIRouter(prefix="/urls", tags=["urls"])


def short_link(request: Request, identifier: str) -> str:
    """Fully-qualified redirect URL for a short code or alias"""
    return str(request.url_for("redirect_to_original_url", identifier=identifier))


def strip_short_link_prefix(request: Request, identifier: str) -> str:
    """Accept either a bare code/alias or the full short link built by short_link()"""
    prefix = short_link(request, "_").rsplit("/", 1)[0] + "/"
    if identifier.startswith(prefix):
        return identifier[len(prefix):]
    return identifier


@router.post("", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
async def shorten_url(
    url_data: URLCreate,
    request: Request,
    url_service: URLService = Depends(get_url_service)
):
    """Create a short URL and return the full short link as plain text"""
    url = await url_service.shorten_url(url_data.original_url)
    return short_link(request, url.short_url)


@router.get("", response_model=List[URLWithStats])
async def list_urls(
    request: Request,
    url_service: URLService = Depends(get_url_service)
):
    """All URLs (deleted included) with per-IP visit statistics"""
    urls = await url_service.get_urls()
    return [
        url.model_copy(update={
            "short_url": short_link(request, url.short_url),
            "alias": short_link(request, url.alias) if url.alias else None,
        })
        for url in urls
    ]


@router.put("/{identifier:path}", response_class=Response)
async def update_url_alias(
    identifier: str,
    alias_data: AliasUpdate,
    request: Request,
    url_service: URLService = Depends(get_url_service)
):
    """Set the alias and rate limit of a URL given its short code, alias or full short link"""
    try:
        await url_service.update_alias(
            strip_short_link_prefix(request, identifier),
            alias_data.alias,
            alias_data.rate_limit,
        )
    except AliasConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except URLNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_200_OK)


@router.delete("/{identifier:path}", response_class=Response)
async def delete_url(
    identifier: str,
    request: Request,
    url_service: URLService = Depends(get_url_service)
):
    """Soft delete a URL given its short code, alias or full short link"""
    try:
        await url_service.delete_url(strip_short_link_prefix(request, identifier))
    except URLNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_200_OK)
