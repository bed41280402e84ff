from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from readlater.api.deps import get_current_user_id
from readlater.core.config import settings
from readlater.schemas.library_item import (
    BulkActionIn,
    BulkActionOut,
    LibraryItemCreateIn,
    LibraryItemDetailOut,
    LibraryItemOut,
    LibraryItemUpdateIn,
    PageOut,
    SearchItemOut,
    SearchResultOut,
)
from readlater.services.bulk_actions import bulk_update_library_items
from readlater.services.library_items import (
    create_library_item,
    delete_library_item_by_id,
    find_library_item_by_id,
    find_library_item_by_url,
    find_library_items_by_prefix,
    restore_library_item,
    search_library_items,
    update_library_item,
)
from readlater.services.search.query_parser import parse_search_query

router = APIRouter(prefix="/v1/library-items", tags=["library-items"])


@router.get("/search", response_model=SearchResultOut)
def search(
    q: str = Query(""),
    offset: int = Query(0, ge=0, alias="from"),
    size: int | None = Query(None, ge=1),
    include_content: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
):
    args = parse_search_query(q)
    args.from_ = offset
    args.size = min(size or settings.search_default_size, settings.search_max_size)
    args.include_content = include_content

    result = search_library_items(args, user_id)

    items = []
    for item in result.items:
        out = SearchItemOut.model_validate(item)
        if include_content:
            out.content = item.readable_content
        items.append(out)

    return SearchResultOut(
        page=PageOut(offset=offset, size=args.size, total=result.count),
        items=items,
    )


@router.get("/by-url", response_model=LibraryItemDetailOut)
def get_by_url(url: str, user_id: str = Depends(get_current_user_id)):
    item = find_library_item_by_url(url, user_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Library item not found")
    return item


@router.get("/prefix", response_model=list[LibraryItemOut])
def list_by_prefix(
    prefix: str = Query(..., min_length=1),
    limit: int | None = Query(None, ge=1, le=50),
    user_id: str = Depends(get_current_user_id),
):
    return find_library_items_by_prefix(prefix, limit, user_id=user_id)


@router.post("/bulk", response_model=BulkActionOut)
def bulk_action(payload: BulkActionIn, user_id: str = Depends(get_current_user_id)):
    args = parse_search_query(payload.query)
    updated = bulk_update_library_items(
        payload.action, args, user_id, labels=payload.label_ids
    )
    return BulkActionOut(action=payload.action, updated=updated)


@router.post("", response_model=LibraryItemDetailOut, status_code=201)
def create(payload: LibraryItemCreateIn, user_id: str = Depends(get_current_user_id)):
    return create_library_item(payload.model_dump(), user_id)


@router.get("/{item_id}", response_model=LibraryItemDetailOut)
def get_item(item_id: str, user_id: str = Depends(get_current_user_id)):
    item = find_library_item_by_id(item_id, user_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Library item not found")
    return item


@router.patch("/{item_id}", response_model=LibraryItemDetailOut)
def update_item(
    item_id: str,
    payload: LibraryItemUpdateIn,
    user_id: str = Depends(get_current_user_id),
):
    return update_library_item(item_id, payload.model_dump(exclude_unset=True), user_id)


@router.post("/{item_id}/restore", response_model=LibraryItemDetailOut)
def restore_item(item_id: str, user_id: str = Depends(get_current_user_id)):
    return restore_library_item(item_id, user_id)


@router.delete("/{item_id}", status_code=204)
def delete_item(item_id: str, user_id: str = Depends(get_current_user_id)):
    if not delete_library_item_by_id(item_id, user_id):
        raise HTTPException(status_code=404, detail="Library item not found")
    return None
