# Chat Command Handlers
# Import all handlers to trigger auto-registration via decorators

from groupchat.chat.command_handlers.account_handlers import (
    SignupHandler,
    LoginHandler,
    LogoutHandler,
)
from groupchat.chat.command_handlers.group_handlers import (
    CreateGroupHandler,
    UpdateGroupHandler,
    LeaveGroupHandler,
    DeleteGroupHandler,
)
from groupchat.chat.command_handlers.message_handlers import CreateMessageHandler

__all__ = [
    'SignupHandler',
    'LoginHandler',
    'LogoutHandler',
    'CreateGroupHandler',
    'UpdateGroupHandler',
    'LeaveGroupHandler',
    'DeleteGroupHandler',
    'CreateMessageHandler',
]
