"""
Verification Engine

Button/modal driven verification with three paths to a member record:
- Login via the external identity provider
- Union membership order lookup
- Manual review by the committee

The engine returns platform-neutral replies; the Discord adapter in
`bot` renders them and supplies the member handle and notifier.
"""

from .dispatch import VerifyDispatcher
from .gateway import MemberHandle, Notifier, NotificationError, RoleGatewayError, RoleIds
from .session import CompletionReport, VerifySession
from .tokens import Decision, Step, Token, TokenError
from .ui import Button, ButtonStyle, Card, Modal, Reply, ReplyMode, TextField

__all__ = [
    'VerifyDispatcher',
    'VerifySession',
    'CompletionReport',
    'MemberHandle',
    'Notifier',
    'NotificationError',
    'RoleGatewayError',
    'RoleIds',
    'Decision',
    'Step',
    'Token',
    'TokenError',
    'Button',
    'ButtonStyle',
    'Card',
    'Modal',
    'Reply',
    'ReplyMode',
    'TextField',
]
