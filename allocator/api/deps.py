"""
Request-scoped dependencies built from the application's storage
"""

from typing import Iterator

from fastapi import Request

from allocator.services.repositories import Repository, SqlRepository


def get_repository(request: Request) -> Iterator[Repository]:
    """Yield a repository bound to the storage created at startup"""
    state = request.app.state
    if getattr(state, "firestore", None) is not None:
        from allocator.services.firestore_repository import FirestoreRepository
        yield FirestoreRepository(state.firestore)
        return

    db = state.database.session()
    try:
        yield SqlRepository(db)
    finally:
        db.close()
