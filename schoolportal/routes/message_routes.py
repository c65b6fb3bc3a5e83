from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.dependencies import RoleGuard, get_store
from schoolportal.core.choices import MessageType
from schoolportal.core.errors import PortalError
from schoolportal.datastore import DataStore
from schoolportal.services.messaging import inbox, mark_read, send_message

router = APIRouter(tags=['messages'])

member_guard = RoleGuard()


class SendMessageRequest(BaseModel):
    recipient_id: str
    subject: str
    content: str
    message_type: MessageType = MessageType.MESSAGE
    attachment_url: str | None = None

    @field_validator('subject', 'content')
    @classmethod
    def required_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError('This field is required')
        return cleaned


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    recipient_id: str
    subject: str
    content: str
    message_type: str
    attachment_url: str | None = None
    is_read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class InboxMessageResponse(MessageResponse):
    sender_name: str


class InboxResponse(BaseModel):
    unread_count: int
    messages: list[InboxMessageResponse]


@router.post('', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send(
    data: SendMessageRequest,
    actor: AuthSnapshot = Depends(member_guard),
    store: DataStore = Depends(get_store),
):
    try:
        return await send_message(
            store,
            actor,
            data.recipient_id,
            data.subject,
            data.content,
            message_type=data.message_type,
            attachment_url=data.attachment_url,
        )
    except PortalError as exc:
        raise exc.to_http() from exc


@router.get('', response_model=InboxResponse)
async def list_inbox(
    actor: AuthSnapshot = Depends(member_guard),
    store: DataStore = Depends(get_store),
):
    try:
        entries = await inbox(store, actor.user_id)
    except PortalError as exc:
        raise exc.to_http() from exc
    messages = [
        InboxMessageResponse(
            **MessageResponse.model_validate(entry.message).model_dump(),
            sender_name=entry.sender_name,
        )
        for entry in entries
    ]
    return InboxResponse(unread_count=sum(1 for item in messages if not item.is_read), messages=messages)


@router.post('/{message_id}/read', response_model=MessageResponse)
async def read(
    message_id: str,
    actor: AuthSnapshot = Depends(member_guard),
    store: DataStore = Depends(get_store),
):
    try:
        return await mark_read(store, actor.user_id, message_id)
    except PortalError as exc:
        raise exc.to_http() from exc
