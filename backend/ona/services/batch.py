# Overview: Sequential batch runner with one savepoint per item.

"""
Batch operations keep a partial-result shape: each item runs inside
db.session.begin_nested(), a failing item is rolled back on its own and
reported, and everything that succeeded is committed together at the end.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError

from ..errors import ServiceError, translate_integrity_error
from ..extensions import db

logger = logging.getLogger(__name__)


def run_batch(
    operation: str,
    ids: list[str],
    handler: Callable[[str], Any],
    *,
    result_key: str,
) -> dict:
    """
    Apply handler(id) to each id.

    handler returns the serialized entity (or None for deletes) and signals
    per-item failure by raising a ServiceError. Other exceptions abort the
    whole batch.
    """
    results: list[dict] = []
    errors: list[dict] = []

    for entity_id in ids:
        nested = db.session.begin_nested()
        try:
            outcome = handler(entity_id)
            nested.commit()
        except ServiceError as exc:
            nested.rollback()
            logger.warning("Batch %s rejected %s: %s", operation, entity_id, exc.message)
            errors.append({"id": entity_id, "error": exc.message, "code": exc.code.value})
            continue
        except IntegrityError as exc:
            nested.rollback()
            err = translate_integrity_error(exc, "Conflicting change")
            logger.warning("Batch %s rejected %s: constraint violation", operation, entity_id)
            errors.append({"id": entity_id, "error": err.message, "code": err.code.value})
            continue
        except Exception:
            nested.rollback()
            db.session.rollback()
            raise
        results.append({"id": entity_id, "success": True, result_key: outcome})

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Batch %s finished: %d ok, %d failed", operation, len(results), len(errors)
    )
    return {
        "operation": operation,
        "processed": len(ids),
        "successful": len(results),
        "failed": len(errors),
        "results": results,
        "errors": errors,
    }
