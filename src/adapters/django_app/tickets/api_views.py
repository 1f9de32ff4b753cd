"""
JSON API views for tickets and the ticket policy.

Endpoints:
- GET  /api/tickets/ - List tickets visible to the actor
- POST /api/tickets/ - Create ticket
- GET  /api/tickets/<id>/ - Ticket detail
- PATCH /api/tickets/<id>/ - Update fields and/or status (comment required)
- POST /api/tickets/<id>/assign/ - Assign ticket
- GET  /api/tickets/<id>/assignments/ - Assignment history
- POST /api/tickets/<id>/approve/ - Approve pending resolution
- POST /api/tickets/<id>/close-by-customer/ - Close on customer request
- POST /api/tickets/<id>/comments/ - Add comment
- POST /api/tickets/<id>/attachments/ - Add attachments
- GET/PATCH /api/settings/ - Read/update ticket settings
- POST /api/settings/reset/ - Restore defaults
- POST /api/settings/auto-approval/ - Toggle auto approval
- GET/PUT /api/settings/due-dates/ - Due date configuration

Format:
- Input: JSON
- Output: JSON {success, data/error, meta}

Authentication:
- X-Actor-Id header, role looked up in the staff directory
"""

from datetime import datetime
from typing import Any, Optional
import logging

from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from src.core.policy.dtos import (
    ToggleAutoApprovalInputDTO,
    UpdateDueDatesInputDTO,
    UpdateSettingsInputDTO,
)
from src.core.shared.exceptions import ValidationError
from src.core.tickets.dtos import (
    AddAttachmentsInputDTO,
    AddCommentInputDTO,
    ApproveTicketInputDTO,
    AssignTicketInputDTO,
    AttachmentInputDTO,
    CloseByCustomerInputDTO,
    CreateTicketInputDTO,
    DeleteAttachmentInputDTO,
    TicketFilterDTO,
    UpdateTicketInputDTO,
)

from ..shared.http import BaseAPIView, json_response, paginate

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def parse_due_date(value: Any) -> Optional[datetime]:
    if value in (None, ''):
        return None
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValidationError(f"Invalid due date: {value}", field='due_date')
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def parse_attachments(raw: Any) -> tuple:
    if raw in (None, ''):
        return ()
    if not isinstance(raw, list):
        raise ValidationError("attachments must be a list", field='attachments')
    attachments = []
    for item in raw:
        if not isinstance(item, dict) or not item.get('file_name') or not item.get('url'):
            raise ValidationError(
                "Each attachment needs file_name and url",
                field='attachments',
            )
        attachments.append(AttachmentInputDTO(
            file_name=item['file_name'],
            url=item['url'],
            content_type=item.get('content_type'),
            size=item.get('size'),
        ))
    return tuple(attachments)


# =============================================================================
# Ticket API Views
# =============================================================================

class TicketAPIListView(BaseAPIView):
    """
    GET /api/tickets/ - List tickets
    POST /api/tickets/ - Create ticket
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        """
        List tickets with optional filters.

        Query params:
        - status, priority, category, assigned_to, customer_id, created_by
        - page (default 1), per_page (default 20)
        """
        try:
            actor = self.get_actor(request)
            filters = TicketFilterDTO(
                status=request.GET.get('status') or None,
                priority=request.GET.get('priority') or None,
                category=request.GET.get('category') or None,
                assigned_to=request.GET.get('assigned_to') or None,
                customer_id=request.GET.get('customer_id') or None,
                created_by=request.GET.get('created_by') or None,
            )
            tickets = self.get_service('list_tickets_service').execute(actor, filters)
            page, meta = paginate(request, tickets)

            return json_response(
                success=True,
                data=[t.to_dict() for t in page],
                meta=meta,
            )

        except Exception as e:
            return self.handle_exception(e)

    def post(self, request: HttpRequest) -> JsonResponse:
        """
        Create a ticket.

        Body JSON:
        {
            "title": "string (required)",
            "description": "string (required)",
            "customer_id": "string (required)",
            "priority": "LOW|MEDIUM|HIGH|CRITICAL (optional)",
            "category": "HARDWARE|SOFTWARE|NETWORK|ACCOUNT|OTHER (optional)",
            "due_date": "ISO datetime (optional)",
            "inventory_item_id", "serial_number", "item_metadata" (optional)
        }
        """
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = CreateTicketInputDTO(
                actor=actor,
                title=data.get('title', ''),
                description=data.get('description', ''),
                customer_id=data.get('customer_id', ''),
                priority=data.get('priority') or 'MEDIUM',
                category=data.get('category') or 'OTHER',
                due_date=parse_due_date(data.get('due_date')),
                inventory_item_id=data.get('inventory_item_id'),
                serial_number=data.get('serial_number'),
                item_metadata=data.get('item_metadata') or {},
            )

            output = self.get_service('create_ticket_service').execute(input_dto)
            logger.info(f"API: ticket created {output.code}")

            return json_response(success=True, data=output.to_dict(), status=201)

        except Exception as e:
            return self.handle_exception(e)


class TicketAPIDetailView(BaseAPIView):
    """
    GET /api/tickets/<id>/ - Ticket detail
    PATCH /api/tickets/<id>/ - Update ticket
    """

    def get(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            ticket = self.get_service('get_ticket_service').execute(actor, pk)
            return json_response(success=True, data=ticket.to_dict())

        except Exception as e:
            return self.handle_exception(e)

    def patch(self, request: HttpRequest, pk: str) -> JsonResponse:
        """
        Update ticket fields and/or status.

        Body JSON:
        {
            "comment": "string (required)",
            "title" / "description" / "priority" / "category" /
            "inventory_item_id" / "serial_number" / "item_metadata" /
            "status" / "assigned_to": new values (optional)
        }

        The response reports requested vs applied status, so a client
        asking for RESOLVED learns when the ticket went to PENDING_APPROVAL.
        """
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)
            comment = data.pop('comment', '')

            input_dto = UpdateTicketInputDTO(
                actor=actor,
                ticket_id=pk,
                comment=comment,
                changes=data,
            )
            result = self.get_service('update_ticket_service').execute(input_dto)

            return json_response(success=True, data=result.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class TicketAPIAssignView(BaseAPIView):
    """POST /api/tickets/<id>/assign/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        """
        Body JSON:
        {
            "assignee_id": "string (required)",
            "note": "string (optional)"
        }
        """
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            if not data.get('assignee_id'):
                raise ValidationError("assignee_id is required", field='assignee_id')

            input_dto = AssignTicketInputDTO(
                actor=actor,
                ticket_id=pk,
                assignee_id=data['assignee_id'],
                note=data.get('note', ''),
            )
            output = self.get_service('assign_ticket_service').execute(input_dto)
            logger.info(f"API: ticket {output.code} assigned to {data['assignee_id']}")

            return json_response(success=True, data=output.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class TicketAPIAssignmentsView(BaseAPIView):
    """GET /api/tickets/<id>/assignments/"""

    def get(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            records = self.get_service('get_assignment_history_service').execute(actor, pk)
            return json_response(success=True, data=[r.to_dict() for r in records])

        except Exception as e:
            return self.handle_exception(e)


class TicketAPIApproveView(BaseAPIView):
    """POST /api/tickets/<id>/approve/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = ApproveTicketInputDTO(
                actor=actor,
                ticket_id=pk,
                reason=data.get('reason', ''),
            )
            output = self.get_service('approve_ticket_service').execute(input_dto)

            return json_response(success=True, data=output.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class TicketAPICloseByCustomerView(BaseAPIView):
    """POST /api/tickets/<id>/close-by-customer/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = CloseByCustomerInputDTO(
                actor=actor,
                ticket_id=pk,
                reason=data.get('reason', ''),
            )
            result = self.get_service('close_by_customer_service').execute(input_dto)

            return json_response(success=True, data=result.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class TicketAPICommentsView(BaseAPIView):
    """POST /api/tickets/<id>/comments/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        """
        Body JSON:
        {
            "text": "string (required)",
            "is_internal": bool (optional),
            "attachments": [{"file_name", "url", "content_type", "size"}] (optional)
        }
        """
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = AddCommentInputDTO(
                actor=actor,
                ticket_id=pk,
                text=data.get('text', ''),
                is_internal=bool(data.get('is_internal', False)),
                attachments=parse_attachments(data.get('attachments')),
            )
            output = self.get_service('add_comment_service').execute(input_dto)

            return json_response(success=True, data=output.to_dict(), status=201)

        except Exception as e:
            return self.handle_exception(e)


class TicketAPIAttachmentsView(BaseAPIView):
    """POST /api/tickets/<id>/attachments/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = AddAttachmentsInputDTO(
                actor=actor,
                ticket_id=pk,
                attachments=parse_attachments(data.get('attachments')),
            )
            output = self.get_service('add_attachments_service').execute(input_dto)

            return json_response(success=True, data=output.to_dict(), status=201)

        except Exception as e:
            return self.handle_exception(e)


class TicketAPIAttachmentDetailView(BaseAPIView):
    """DELETE /api/tickets/<id>/attachments/<attachment_id>/"""

    def delete(self, request: HttpRequest, pk: str, attachment_id: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)

            input_dto = DeleteAttachmentInputDTO(
                actor=actor,
                ticket_id=pk,
                attachment_id=attachment_id,
            )
            output = self.get_service('delete_attachment_service').execute(input_dto)

            return json_response(success=True, data=output.to_dict())

        except Exception as e:
            return self.handle_exception(e)


# =============================================================================
# Settings API Views
# =============================================================================

class SettingsAPIView(BaseAPIView):
    """
    GET /api/settings/ - Current settings (created with defaults on first read)
    PATCH /api/settings/ - Partial update
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        try:
            self.get_actor(request)
            settings = self.get_service('get_settings_service').execute()
            return json_response(success=True, data=settings.to_dict())

        except Exception as e:
            return self.handle_exception(e)

    def patch(self, request: HttpRequest) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = UpdateSettingsInputDTO(actor=actor, changes=data)
            settings = self.get_service('update_settings_service').execute(input_dto)

            return json_response(success=True, data=settings.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class SettingsAPIResetView(BaseAPIView):
    """POST /api/settings/reset/"""

    def post(self, request: HttpRequest) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            settings = self.get_service('reset_settings_service').execute(actor)
            return json_response(success=True, data=settings.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class SettingsAPIAutoApprovalView(BaseAPIView):
    """POST /api/settings/auto-approval/"""

    def post(self, request: HttpRequest) -> JsonResponse:
        """
        Body JSON:
        {
            "enabled": bool (required),
            "roles": ["SUPPORT_MANAGER", ...] (optional)
        }
        """
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            if not isinstance(data.get('enabled'), bool):
                raise ValidationError("enabled must be a boolean", field='enabled')
            roles = data.get('roles') or []
            if not isinstance(roles, list):
                raise ValidationError("roles must be a list", field='roles')

            input_dto = ToggleAutoApprovalInputDTO(
                actor=actor,
                enabled=data['enabled'],
                roles=tuple(roles),
            )
            settings = self.get_service('toggle_auto_approval_service').execute(input_dto)

            return json_response(success=True, data=settings.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class SettingsAPIDueDatesView(BaseAPIView):
    """
    GET /api/settings/due-dates/
    PUT /api/settings/due-dates/
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        try:
            self.get_actor(request)
            config = self.get_service('get_due_dates_config_service').execute()
            return json_response(success=True, data=config.to_dict())

        except Exception as e:
            return self.handle_exception(e)

    def put(self, request: HttpRequest) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = UpdateDueDatesInputDTO(
                actor=actor,
                default_due_date_days=data.get('default_due_date_days'),
                priority_due_dates=data.get('priority_due_dates'),
            )
            config = self.get_service('update_due_dates_config_service').execute(input_dto)

            return json_response(success=True, data=config.to_dict())

        except Exception as e:
            return self.handle_exception(e)
