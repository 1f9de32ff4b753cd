"""
Mappers between core entities and Django models.

Responsibilities:
- TicketEntity <-> TicketModel, embedded collections as JSON lists
- TicketSettings <-> TicketSettingsModel
- DomainEvent -> DomainEventModel (event store)

Principles:
- Mappers are stateless
- No business logic, only data conversion
- Datetimes inside JSON are ISO-8601 strings
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from src.core.policy.entities import TicketSettings
from src.core.shared.events import DomainEvent
from src.core.shared.roles import Role
from src.core.tickets.entities import (
    AssignmentRecord,
    Attachment,
    Comment,
    FieldChange,
    HistoryEntry,
    TicketCategory,
    TicketEntity,
    TicketPriority,
    TicketStatus,
)

from .models import DomainEventModel, TicketModel, TicketSettingsModel


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class TicketMapper:
    """
    Mapper between TicketEntity and TicketModel.

    - to_model(): Entity -> Model (unsaved)
    - to_entity(): Model -> Entity
    - to_entity_list(): List[Model] -> List[Entity]
    """

    @staticmethod
    def to_fields(entity: TicketEntity) -> Dict[str, Any]:
        """Column values of the entity, ``id`` and ``version`` excluded."""
        return {
            'code': entity.code,
            'title': entity.title,
            'description': entity.description,
            'status': entity.status.value,
            'priority': entity.priority.value,
            'category': entity.category.value,
            'customer_id': entity.customer_id,
            'created_by': entity.created_by,
            'inventory_item_id': entity.inventory_item_id,
            'serial_number': entity.serial_number,
            'item_metadata': dict(entity.item_metadata),
            'assigned_to': entity.assigned_to,
            'assigned_by': entity.assigned_by,
            'assigned_at': entity.assigned_at,
            'due_date': entity.due_date,
            'approved_by': entity.approved_by,
            'approved_at': entity.approved_at,
            'resolved_by': entity.resolved_by,
            'resolved_at': entity.resolved_at,
            'closed_by': entity.closed_by,
            'closed_at': entity.closed_at,
            'assignment_history': [
                TicketMapper.assignment_to_dict(r) for r in entity.assignment_history
            ],
            'comments': [TicketMapper.comment_to_dict(c) for c in entity.comments],
            'attachments': [TicketMapper.attachment_to_dict(a) for a in entity.attachments],
            'history': [TicketMapper.history_to_dict(h) for h in entity.history],
            'created_at': entity.created_at,
            'updated_at': entity.updated_at,
        }

    @staticmethod
    def to_model(entity: TicketEntity) -> TicketModel:
        """
        Convert TicketEntity to an unsaved TicketModel.

        Note:
            Does not call .save(), the repository does
        """
        return TicketModel(id=entity.id, version=entity.version, **TicketMapper.to_fields(entity))

    @staticmethod
    def to_entity(model: TicketModel) -> TicketEntity:
        """
        Convert TicketModel to TicketEntity.

        Bypasses TicketEntity.create(): stored data was validated on creation.
        """
        return TicketEntity(
            id=model.id,
            code=model.code,
            title=model.title,
            description=model.description,
            status=TicketStatus(model.status),
            priority=TicketPriority(model.priority),
            category=TicketCategory(model.category),
            customer_id=model.customer_id,
            created_by=model.created_by,
            inventory_item_id=model.inventory_item_id,
            serial_number=model.serial_number,
            item_metadata=dict(model.item_metadata or {}),
            assigned_to=model.assigned_to,
            assigned_by=model.assigned_by,
            assigned_at=model.assigned_at,
            due_date=model.due_date,
            approved_by=model.approved_by,
            approved_at=model.approved_at,
            resolved_by=model.resolved_by,
            resolved_at=model.resolved_at,
            closed_by=model.closed_by,
            closed_at=model.closed_at,
            assignment_history=[
                TicketMapper.assignment_from_dict(d) for d in model.assignment_history or []
            ],
            comments=[TicketMapper.comment_from_dict(d) for d in model.comments or []],
            attachments=[TicketMapper.attachment_from_dict(d) for d in model.attachments or []],
            history=[TicketMapper.history_from_dict(d) for d in model.history or []],
            created_at=model.created_at,
            updated_at=model.updated_at,
            version=model.version,
        )

    @staticmethod
    def to_entity_list(models: List[TicketModel]) -> List[TicketEntity]:
        return [TicketMapper.to_entity(m) for m in models]

    # =========================================================================
    # Embedded collections
    # =========================================================================

    @staticmethod
    def assignment_to_dict(record: AssignmentRecord) -> Dict[str, Any]:
        return {
            'assigned_to': record.assigned_to,
            'assigned_by': record.assigned_by,
            'assigned_at': _iso(record.assigned_at),
            'note': record.note,
        }

    @staticmethod
    def assignment_from_dict(data: Dict[str, Any]) -> AssignmentRecord:
        return AssignmentRecord(
            assigned_to=data['assigned_to'],
            assigned_by=data['assigned_by'],
            assigned_at=_parse(data['assigned_at']),
            note=data.get('note', ''),
        )

    @staticmethod
    def attachment_to_dict(attachment: Attachment) -> Dict[str, Any]:
        return {
            'id': attachment.id,
            'file_name': attachment.file_name,
            'url': attachment.url,
            'uploaded_by': attachment.uploaded_by,
            'uploaded_at': _iso(attachment.uploaded_at),
            'content_type': attachment.content_type,
            'size': attachment.size,
        }

    @staticmethod
    def attachment_from_dict(data: Dict[str, Any]) -> Attachment:
        fields = dict(
            file_name=data['file_name'],
            url=data['url'],
            uploaded_by=data['uploaded_by'],
            uploaded_at=_parse(data['uploaded_at']),
            content_type=data.get('content_type'),
            size=data.get('size'),
        )
        # rows written before attachments carried ids get a fresh one
        if data.get('id'):
            fields['id'] = data['id']
        return Attachment(**fields)

    @staticmethod
    def comment_to_dict(comment: Comment) -> Dict[str, Any]:
        return {
            'id': comment.id,
            'author_id': comment.author_id,
            'text': comment.text,
            'is_internal': comment.is_internal,
            'is_system': comment.is_system,
            'created_at': _iso(comment.created_at),
            'attachments': [TicketMapper.attachment_to_dict(a) for a in comment.attachments],
        }

    @staticmethod
    def comment_from_dict(data: Dict[str, Any]) -> Comment:
        return Comment(
            id=data['id'],
            author_id=data['author_id'],
            text=data['text'],
            is_internal=data.get('is_internal', False),
            created_at=_parse(data['created_at']),
            is_system=data.get('is_system', False),
            attachments=tuple(
                TicketMapper.attachment_from_dict(a) for a in data.get('attachments', [])
            ),
        )

    @staticmethod
    def history_to_dict(entry: HistoryEntry) -> Dict[str, Any]:
        return {
            'action': entry.action,
            'actor_id': entry.actor_id,
            'at': _iso(entry.at),
            'note': entry.note,
            'changes': [
                {'field': c.field, 'old': c.old, 'new': c.new} for c in entry.changes
            ],
            'attachments_added': list(entry.attachments_added),
            'comments_added': entry.comments_added,
            'attachments_removed': list(entry.attachments_removed),
        }

    @staticmethod
    def history_from_dict(data: Dict[str, Any]) -> HistoryEntry:
        return HistoryEntry(
            action=data['action'],
            actor_id=data['actor_id'],
            at=_parse(data['at']),
            note=data.get('note', ''),
            changes=tuple(
                FieldChange(c['field'], c.get('old'), c.get('new'))
                for c in data.get('changes', [])
            ),
            attachments_added=tuple(data.get('attachments_added', [])),
            comments_added=data.get('comments_added', 0),
            attachments_removed=tuple(data.get('attachments_removed', [])),
        )


class TicketSettingsMapper:
    """Mapper between TicketSettings and TicketSettingsModel."""

    @staticmethod
    def to_fields(settings: TicketSettings) -> Dict[str, Any]:
        return {
            'auto_approval': settings.auto_approval,
            'auto_approval_roles': [r.value for r in settings.auto_approval_roles],
            'default_assign_to_support_manager': settings.default_assign_to_support_manager,
            'default_due_date_days': settings.default_due_date_days,
            'priority_due_dates': dict(settings.priority_due_dates),
            'notify_on_status_change': settings.notify_on_status_change,
            'allow_reopen_closed_tickets': settings.allow_reopen_closed_tickets,
            'reopen_window_days': settings.reopen_window_days,
            'updated_by': settings.updated_by,
            'updated_at': settings.updated_at,
        }

    @staticmethod
    def to_entity(model: TicketSettingsModel) -> TicketSettings:
        return TicketSettings(
            id=model.id,
            auto_approval=model.auto_approval,
            auto_approval_roles=[Role(r) for r in model.auto_approval_roles or []],
            default_assign_to_support_manager=model.default_assign_to_support_manager,
            default_due_date_days=model.default_due_date_days,
            priority_due_dates=dict(model.priority_due_dates or {}),
            notify_on_status_change=model.notify_on_status_change,
            allow_reopen_closed_tickets=model.allow_reopen_closed_tickets,
            reopen_window_days=model.reopen_window_days,
            updated_by=model.updated_by,
            updated_at=model.updated_at,
            version=model.version,
        )


class DomainEventMapper:
    """
    Mapper from DomainEvent to DomainEventModel.

    Only the forward direction exists: stored events are read back as
    dicts for audit and replay.
    """

    @staticmethod
    def to_model(event: DomainEvent, sequence: int = 0) -> DomainEventModel:
        return DomainEventModel(
            event_id=event.event_id,
            event_type=event.event_type,
            aggregate_type=event.aggregate_type,
            aggregate_id=event.aggregate_id,
            event_data=event.to_dict(),
            version=event.version,
            sequence=sequence,
            occurred_at=event.occurred_at,
        )
