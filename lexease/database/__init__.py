"""
The `database` package is responsible for all interactions with the application's database.
It provides configuration, entity definitions, CRUD operations, and the result sinks
the analysis pipeline persists through.

Contents:
    - config:
        Settings and the SQLAlchemy engine, metadata and declarative base.

    - entities:
        SQLAlchemy entity models: documents (text plus per-stage analysis
        results and errors) and their Q&A messages.

    - daos:
        Data Access Objects (DAOs) providing CRUD operations for the entities.

    - core:
        Service functions used by the router, and the `ResultSink`
        implementations used by the analysis pipeline.

    - helpers:
        Transaction management (`@transactional`) and session handling.
"""
