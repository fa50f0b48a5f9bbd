# =============================================================================
# File: groupchat/wse/core/topics.py
# Description: Topic naming for subscriptions
# =============================================================================


def group_messages_topic(group_id: int) -> str:
    """Topic carrying messageAdded events of one group."""
    return f"group:{group_id}:messages"


def user_groups_topic(user_id: int) -> str:
    """Personal topic carrying groupAdded events of one user."""
    return f"user:{user_id}:groups"
