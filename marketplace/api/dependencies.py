# marketplace/api/dependencies.py
from typing import Callable, Type

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from marketplace.api.auth import get_current_caller
from marketplace.database import get_db
from marketplace.services.auth_service import CallerSession
from marketplace.services.chat_session import ChatSession
from marketplace.services.inbox import Inbox


def get_service(service_class: Type) -> Callable:
    """Factory function to create service dependencies with DB injection"""
    def _get_service(db: Session = Depends(get_db)):
        return service_class(db)
    return _get_service


def get_chat_session(
    background_tasks: BackgroundTasks,
    caller: CallerSession = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> ChatSession:
    """A closed chat session for the current caller; detached work runs after the response."""
    return ChatSession(db, caller, background_tasks)


def get_inbox(
    background_tasks: BackgroundTasks,
    caller: CallerSession = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> Inbox:
    return Inbox(db, caller, background_tasks)
