"""
DAOs Package: Data Access Layer (SQLAlchemy 2.0)
================================================

The `daos` package encapsulates all queries against the ORM entities and
exposes small CRUD APIs to the service layer.

Conventions
-----------
- Session lifecycle (open/commit/rollback) is handled by callers
- DAOs log and re-raise so upper layers decide error policy

Contents
--------
- DocumentDao
    * createDocument / fetchDocumentById / fetchDocumentsByUserId
    * updateDocumentFields : field-scoped UPDATE of analysis columns only
    * deleteDocument

- DocumentMessagesDao
    * createMessage / nextSequence
    * fetchMessagesByDocumentId (log order)
    * deleteMessagesByDocumentId
"""
