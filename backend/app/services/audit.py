"""
Audit logging service for billing and accounting actions.

Provides centralized logging for every money movement and correction.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog
from backend.app.schemas.auth import Actor


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Flight charging
    FLIGHT_CHARGED = "FLIGHT_CHARGED"
    FLIGHT_SPLIT_CHARGED = "FLIGHT_SPLIT_CHARGED"
    BATCH_CHARGE_COMPLETED = "BATCH_CHARGE_COMPLETED"

    # Ledger maintenance
    TRANSACTION_CREATED = "TRANSACTION_CREATED"
    TRANSACTION_EDITED = "TRANSACTION_EDITED"
    TRANSACTION_REVERSED = "TRANSACTION_REVERSED"
    FLIGHT_CHARGE_REVERSED = "FLIGHT_CHARGE_REVERSED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor: Optional[Actor] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True
) -> AuditLog:
    """
    Log a billing event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor: Member performing the action (None for system actions)
        entity_type: Kind of record acted upon (flight_log, user_transaction, ...)
        entity_id: ID of the record acted upon
        metadata: Additional context as JSON
        commit: Commit immediately. Pass False to join the caller's unit of work.

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor.user_id if actor else None,
        actor_username=actor.username if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )

    db.add(audit_log)
    if commit:
        await db.commit()
        await db.refresh(audit_log)
    else:
        await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_type: Filter by entity kind
        entity_id: Filter by entity ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
