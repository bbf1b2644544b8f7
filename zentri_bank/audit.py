"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Every balance change and approval decision is logged here.
"""

import hashlib
import json
import threading
import uuid
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from enum import Enum

from .storage import StorageInterface, StorageRecord, to_storable, parse_datetime


class AuditEventType(Enum):
    """Types of audit events"""
    # User events
    USER_CREATED = "user_created"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"

    # Cash ledger events
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_APPROVED = "transaction_approved"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_UPDATED = "transaction_updated"
    BALANCE_CREDITED = "balance_credited"
    BALANCE_DEBITED = "balance_debited"

    # Crypto events
    WALLET_CREATED = "wallet_created"
    CRYPTO_CONVERTED = "crypto_converted"
    CRYPTO_SEND_REQUESTED = "crypto_send_requested"
    CRYPTO_SEND_APPROVED = "crypto_send_approved"
    CRYPTO_SEND_REJECTED = "crypto_send_rejected"


@dataclass
class AuditEvent(StorageRecord):
    """
    Immutable audit event with hash chaining for tamper detection
    """
    event_type: AuditEventType
    entity_type: str  # transaction, user, wallet, crypto_transaction
    entity_id: str
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any]
    user_id: Optional[str] = None  # Actor who initiated the action

    def __post_init__(self):
        self.metadata = to_storable(self.metadata or {})

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'user_id': self.user_id,
            'metadata': self.metadata
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        data = dict(data)
        data['created_at'] = parse_datetime(data['created_at'])
        data['updated_at'] = parse_datetime(data['updated_at'])
        data['event_type'] = AuditEventType(data['event_type'])
        return cls(**data)


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection

    The hash of the newest event is read from storage once and then kept in
    memory. Events are written inside ``storage.atomic()``; when the enclosing
    transaction rolls back, the cached hash returns to its value before the
    transaction. One trail per storage instance.
    """

    def __init__(self, storage: StorageInterface, table_name: str = "audit_events"):
        self.storage = storage
        self.table_name = table_name
        self._lock = threading.Lock()
        self._last_hash: Optional[str] = self._load_last_hash()
        self._checkpoint_set = False
        self._checkpoint: Optional[str] = None
        storage.on_commit(self._clear_checkpoint)
        storage.on_rollback(self._restore_checkpoint)

    def _load_last_hash(self) -> Optional[str]:
        """Hash of the most recent stored audit event"""
        events = self.storage.load_all(self.table_name)
        if not events:
            return None
        # The tip is the event no other event points back to
        referenced = {e.get('previous_hash') for e in events}
        tips = [e for e in events if e.get('current_hash') not in referenced] or events
        newest = max(tips, key=lambda x: x.get('created_at', ''))
        return newest.get('current_hash')

    def _clear_checkpoint(self) -> None:
        self._checkpoint_set = False
        self._checkpoint = None

    def _restore_checkpoint(self) -> None:
        if self._checkpoint_set:
            self._last_hash = self._checkpoint
        self._clear_checkpoint()

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> AuditEvent:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity
            metadata: Additional event-specific data
            user_id: ID of the actor

        Returns:
            Created AuditEvent
        """
        with self.storage.atomic(), self._lock:
            if not self._checkpoint_set:
                self._checkpoint = self._last_hash
                self._checkpoint_set = True

            now = datetime.now(timezone.utc)

            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                previous_hash=self._last_hash or "",
                current_hash="",
                metadata=metadata or {},
                user_id=user_id
            )
            event.current_hash = event.calculate_hash()

            self.storage.save(self.table_name, event.id, event.to_dict())
            self._last_hash = event.current_hash

            return event

    def get_events(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditEvent]:
        """Get audit events in chronological order, optionally filtered"""
        filters: Dict[str, Any] = {}
        if entity_type:
            filters['entity_type'] = entity_type
        if entity_id:
            filters['entity_id'] = entity_id
        if event_type:
            filters['event_type'] = event_type.value

        events = [AuditEvent.from_dict(d) for d in self.storage.find(self.table_name, filters)]
        return sorted(events, key=lambda e: e.created_at)

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify every event hash and the links between consecutive events.

        Returns:
            Dict with 'valid', 'total_events' and a list of 'errors'
        """
        events = self.get_events()
        errors = []
        previous_hash = ""

        for event in events:
            if not event.verify_hash():
                errors.append({"event_id": event.id, "error": "hash_mismatch"})
            if event.previous_hash != previous_hash:
                errors.append({"event_id": event.id, "error": "broken_chain"})
            previous_hash = event.current_hash

        return {
            "valid": not errors,
            "total_events": len(events),
            "errors": errors
        }
