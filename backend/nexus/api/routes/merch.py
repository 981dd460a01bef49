"""
周边商品路由模块
"""
from __future__ import annotations

from fastapi import APIRouter

from nexus.api.deps import AdminUser, SessionDep, SubscribedUser
from nexus.api.schemas import ApiEnvelope, MerchCreateRequest, MerchPublic, Message
from nexus.crud import catalog
from nexus.models import MerchItem

router = APIRouter(prefix="/merch", tags=["merch"])


def _merch_public(item: MerchItem) -> MerchPublic:
    return MerchPublic(
        id=item.id,
        name=item.name,
        description=item.description,
        price=item.price,
        stock=item.stock,
        image_urls=list(item.image_urls or []),
        created_at=item.created_at,
    )


@router.get("", response_model=ApiEnvelope)
def list_merch(session: SessionDep, _: SubscribedUser) -> ApiEnvelope:
    return ApiEnvelope(data=[_merch_public(i) for i in catalog.list_merch(session=session)])


@router.post("", response_model=ApiEnvelope)
def create_merch(session: SessionDep, _: AdminUser, body: MerchCreateRequest) -> ApiEnvelope:
    item = catalog.create_merch(
        session=session,
        name=body.name,
        description=body.description,
        price=body.price,
        stock=body.stock,
        image_urls=body.image_urls,
    )
    return ApiEnvelope(data=_merch_public(item))


@router.delete("/{item_id}", response_model=ApiEnvelope)
def delete_merch(session: SessionDep, _: AdminUser, item_id: int) -> ApiEnvelope:
    item = catalog.get_merch(session=session, item_id=item_id)
    catalog.delete_merch(session=session, item=item)
    return ApiEnvelope(data=Message(message="Item deleted"))
