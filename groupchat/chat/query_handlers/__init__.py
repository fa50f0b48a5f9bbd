# Chat Query Handlers
# Import all handlers to trigger auto-registration via decorators

from groupchat.chat.query_handlers.group_query_handlers import (
    GetGroupQueryHandler,
    GetUserQueryHandler,
)
from groupchat.chat.query_handlers.message_query_handlers import GetGroupMessagesQueryHandler

__all__ = [
    'GetGroupQueryHandler',
    'GetUserQueryHandler',
    'GetGroupMessagesQueryHandler',
]
