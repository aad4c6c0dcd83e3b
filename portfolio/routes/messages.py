"""
Contact-form routes. Anyone may submit; only signed-in users may read.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portfolio.dependencies import get_content_store, require_user
from portfolio.schemas import MessageCreate, ok
from portfolio.stores import ContentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", status_code=201)
def submit_message(payload: MessageCreate, store: ContentStore = Depends(get_content_store)):
    message = store.create_message(payload.model_dump())
    logger.info("Received contact message %s", message.id)
    return ok(
        message.as_dict(),
        message="Thank you for your message! I will get back to you soon.",
    )


@router.get("", dependencies=[Depends(require_user)])
def list_messages(
    read: Optional[bool] = Query(None),
    store: ContentStore = Depends(get_content_store),
):
    messages = store.list_messages(read=read)
    return ok([m.as_dict() for m in messages], count=len(messages))


@router.get("/{message_id}", dependencies=[Depends(require_user)])
def get_message(message_id: str, store: ContentStore = Depends(get_content_store)):
    return ok(store.get_message(message_id).as_dict())


@router.put("/{message_id}/read", dependencies=[Depends(require_user)])
def mark_read(message_id: str, store: ContentStore = Depends(get_content_store)):
    return ok(store.mark_message_read(message_id).as_dict())


@router.delete("/{message_id}", dependencies=[Depends(require_user)])
def delete_message(message_id: str, store: ContentStore = Depends(get_content_store)):
    store.delete_message(message_id)
    return ok({}, message="Message deleted successfully")
