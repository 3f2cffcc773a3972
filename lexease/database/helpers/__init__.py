"""
The `helpers` package provides utilities that support database operations.

Contents
--------
- transactionManagement
    * `SessionLocal` session factory bound to the application engine
    * `db_session_context` context variable propagating the active session
    * `@transactional` decorator: reuses the session in context or opens,
      commits, rolls back and closes its own
"""
