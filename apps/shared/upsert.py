"""
Atomic insert utilities using ON CONFLICT

Replaces the unsafe check-then-insert pattern for rows keyed by a unique
column (e.g. users keyed by identity provider id). Two requests carrying a
brand-new token can arrive at the same time; both would miss the lookup and
the second INSERT would fail with a duplicate key violation.

Usage:
    from apps.shared.upsert import atomic_insert_ignore

    # Replace this unsafe pattern:
    user = db.query(User).filter(User.provider_id == sub).first()
    if not user:
        db.add(User(provider_id=sub, ...))
    db.commit()

    # With this atomic operation:
    user = atomic_insert_ignore(db, User, 'provider_id', sub, {...})
"""

from typing import Type, Any, Dict
from sqlalchemy.orm import Session
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from apps.shared.database import Base

DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def atomic_insert_ignore(
    db: Session,
    model: Type[Base],
    unique_field: str,
    unique_value: Any,
    insert_data: Dict[str, Any],
) -> Base:
    """
    Insert a row unless one with the same unique value already exists,
    then return whichever row is stored.

    Uses INSERT ... ON CONFLICT DO NOTHING on PostgreSQL and SQLite so the
    existing row always wins and no duplicate key error is raised.

    Args:
        db: SQLAlchemy database session
        model: SQLAlchemy model class (e.g., User)
        unique_field: Name of the unique field (e.g., 'provider_id')
        unique_value: Value for the unique field
        insert_data: Remaining column values for a fresh row

    Returns:
        The persisted model instance

    Raises:
        ValueError: If model doesn't have the unique field or the
            database dialect has no ON CONFLICT support
    """
    if not hasattr(model, unique_field):
        raise ValueError(f"Model {model.__name__} does not have field '{unique_field}'")

    dialect = db.get_bind().dialect.name
    insert = DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise ValueError(f"Dialect '{dialect}' does not support ON CONFLICT inserts")

    values = {unique_field: unique_value, **insert_data}
    stmt = insert(model).values(**values).on_conflict_do_nothing(
        index_elements=[unique_field]
    )
    db.execute(stmt)
    db.commit()

    return (
        db.query(model)
        .filter(getattr(model, unique_field) == unique_value)
        .one()
    )
