import logging
from sqlalchemy.orm import Session
from models.log import AuditLog

logger = logging.getLogger(__name__)

# Best-effort audit entry. Written in a SAVEPOINT of the caller's transaction so it
# commits with the operation it describes, while a failing insert is discarded
# without affecting that operation. Never raises.
def write_log(db: Session, *, user_id, action, entity=None, entity_id=None, status="SUCCESS", ip=None, meta=None):
    try:
        with db.begin_nested():
            entry = AuditLog(
                user_id=user_id, action=action, entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                status=status, ip=ip, details=meta or {},
            )
            db.add(entry)
    except Exception:
        logger.exception("Failed to write audit log entry for action %s", action)
