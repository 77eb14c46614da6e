"""Use-case layer — business logic decoupled from the HTTP transport."""

from ashteams_chat.application.use_cases.accounts import AccountUseCase
from ashteams_chat.application.use_cases.chat import APOLOGY_MESSAGE, ChatUseCase, TurnResult

__all__ = ["APOLOGY_MESSAGE", "AccountUseCase", "ChatUseCase", "TurnResult"]
