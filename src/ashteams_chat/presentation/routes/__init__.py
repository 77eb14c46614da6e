"""API routers."""

from ashteams_chat.presentation.routes import auth, chat, session

__all__ = ["auth", "chat", "session"]
