"""Direct messages between portal users: send, inbox, mark read."""

import logging
from dataclasses import dataclass
from typing import Any

from schoolportal.auth.context import AuthSnapshot
from schoolportal.core.choices import AppRole, MessageType
from schoolportal.core.errors import MessageNotFound, NotAllowed, RecipientNotFound
from schoolportal.datastore import DataStore

logger = logging.getLogger(__name__)

UNKNOWN_SENDER = 'Unknown'


@dataclass(frozen=True)
class InboxEntry:
    message: Any
    sender_name: str


def can_send(actor: AuthSnapshot, message_type: MessageType) -> bool:
    """Accepted users may message; summons and documents come from staff only."""
    if not actor.is_accepted:
        return False
    if message_type is MessageType.MESSAGE:
        return True
    return actor.primary_role not in (None, AppRole.LEARNER.value)


async def send_message(
    store: DataStore,
    sender: AuthSnapshot,
    recipient_id: str,
    subject: str,
    content: str,
    message_type: MessageType = MessageType.MESSAGE,
    attachment_url: str | None = None,
):
    if not can_send(sender, message_type):
        raise NotAllowed(f'You cannot send a {message_type.value}.')
    if await store.select_one('users', id=recipient_id) is None:
        raise RecipientNotFound()

    message = await store.insert(
        'messages',
        sender_id=sender.user_id,
        recipient_id=recipient_id,
        subject=subject,
        content=content,
        message_type=message_type.value,
        attachment_url=attachment_url,
    )
    logger.info('User %s sent %s %s to %s', sender.user_id, message_type.value, message.id, recipient_id)
    return message


async def inbox(store: DataStore, user_id: str) -> list[InboxEntry]:
    messages = await store.select('messages', recipient_id=user_id, order_by='created_at', descending=True)
    sender_ids = {message.sender_id for message in messages}
    names = {
        profile.user_id: f'{profile.first_name} {profile.last_name}'
        for profile in await store.select('profiles')
        if profile.user_id in sender_ids
    }
    return [InboxEntry(message=message, sender_name=names.get(message.sender_id, UNKNOWN_SENDER)) for message in messages]


async def mark_read(store: DataStore, user_id: str, message_id: str):
    message = await store.select_one('messages', id=message_id)
    if message is None:
        raise MessageNotFound()
    if message.recipient_id != user_id:
        raise NotAllowed('Only the recipient can mark a message as read.')
    if not message.is_read:
        await store.update('messages', {'id': message_id}, {'is_read': True})
    return await store.select_one('messages', id=message_id)
