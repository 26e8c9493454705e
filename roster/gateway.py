"""Thin layer over the request-scoped SQLAlchemy session for raw statements.

ORM queries already bind their values; this module covers the statements the
ORM cannot express (id renumbering, identity counter resets) while keeping
the same rule: values only ever travel as bound parameters.
"""
import logging

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from .errors import SystemFailure
from .extensions import db

logger = logging.getLogger(__name__)


def execute_query(statement, params=None, types=None):
    """Run ``statement`` (``:name`` placeholders) with ``params`` bound.

    ``types`` optionally maps placeholder names to SQLAlchemy types so the
    driver binds them as such. Returns the ``Result``; driver errors are
    logged and re-raised as :class:`SystemFailure`.
    """
    query = text(statement)
    if types:
        query = query.bindparams(*(bindparam(name, type_=type_) for name, type_ in types.items()))
    try:
        return db.session.execute(query, params or {})
    except SQLAlchemyError as exc:
        logger.error("Query failed: %s | %s", statement.split()[0].upper(), exc)
        raise SystemFailure() from exc


def dialect_name():
    return db.session.get_bind().dialect.name


def reset_identity(table):
    """Point the table's id counter at ``MAX(id) + 1``.

    ``table`` must be a trusted identifier from application code: DDL cannot
    take bound parameters.
    """
    max_id = execute_query(f"SELECT MAX(id) FROM {table}").scalar()
    next_id = int(max_id or 0) + 1
    dialect = dialect_name()

    if dialect == "mysql":
        execute_query(f"ALTER TABLE {table} AUTO_INCREMENT = {next_id:d}")
    elif dialect == "postgresql":
        execute_query(
            "SELECT setval(pg_get_serial_sequence(:table, 'id'), :next_id, false)",
            {"table": table, "next_id": next_id},
        )
    elif dialect == "sqlite":
        # Only AUTOINCREMENT tables keep a counter; plain rowid tables reuse MAX+1.
        has_sequence = execute_query(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'"
        ).first()
        if has_sequence:
            execute_query(
                "UPDATE sqlite_sequence SET seq = :seq WHERE name = :table",
                {"seq": next_id - 1, "table": table},
            )
    else:
        logger.warning("Identity reset not supported for dialect %s", dialect)
    db.session.commit()
    return next_id
