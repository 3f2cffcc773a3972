"""
Entities Package: SQLAlchemy 2.0 ORM Models (UUID + UTC)
========================================================

The `entities` package maps database tables to Python classes using
SQLAlchemy 2.0-typed mappings. DAOs (`daos` package) use these classes to
perform CRUD operations.

Conventions
-----------
- Portable `Uuid` primary keys (native on PostgreSQL, CHAR(32) on SQLite)
- Timezone-aware timestamps (UTC)
- SQLAlchemy 2.0 style `Mapped[...]` + `mapped_column(...)`

Contents
--------
- Document
    An uploaded document owned by a user.
    * Fields: `id`, `user_id`, `file_name`, `mime_type`, `document_text`, `created_at`
    * Analysis columns `summary`, `entities`, `risks` (JSON) and the matching
      `*_error` columns, each written by exactly one analysis stage

- DocumentMessage
    One entry of a document's Q&A log.
    * Fields: `id`, `document_id` (FK → document.id), `sequence`, `created_at`,
      `role` ("user" | "assistant"), `content`
"""
