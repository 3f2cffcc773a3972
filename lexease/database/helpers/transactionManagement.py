"""
Database Transaction Management
===============================

Utilities for managing SQLAlchemy sessions with a context variable and a
decorator-based transaction wrapper.

A function decorated with ``@transactional`` receives a ``session`` keyword
argument. If a session is already active in the current context it is reused
and the outermost caller owns commit/rollback; otherwise a fresh session is
opened, committed on success, rolled back on error and always closed.

Analysis stages persist from worker threads (``asyncio.to_thread``). Each
thread runs in a copy of the caller's context, so every concurrent stage write
gets its own session and its own transaction.
"""

import logging
from functools import wraps

import contextvars
from sqlalchemy.orm import sessionmaker

from lexease.database.config.connection_engine import connection_engine

logger = logging.getLogger(__name__)

SessionLocal = sessionmaker(bind=connection_engine, expire_on_commit=False)
"""Session factory bound to the application engine."""

db_session_context = contextvars.ContextVar("db_session_context", default=None)
"""Context variable storing the active SQLAlchemy session."""


def transactional(func):
    """
    Decorator to wrap functions in a managed SQLAlchemy transaction.

    Parameters
    ----------
    func : callable
        The function to wrap. It must accept a `session` keyword argument.

    Returns
    -------
    callable
        The wrapped function, executed within a database transaction.

    Example
    -------
    >>> @transactional
    ... def create_document(document: Document, session=None):
    ...     session.add(document)
    ...     return document
    """
    @wraps(func)
    def wrap_func(*args, **kwargs):
        session = db_session_context.get()
        if session is not None:
            return func(*args, session=session, **kwargs)

        session = SessionLocal()
        token = db_session_context.set(session)
        try:
            result = func(*args, session=session, **kwargs)
            session.flush()
            session.commit()
        except Exception:
            logger.debug("Rolling back transaction in %s", func.__name__)
            session.rollback()
            raise
        finally:
            session.close()
            db_session_context.reset(token)

        return result

    return wrap_func
