"""
Unit tests for the Tickets use cases.

Strategy:
- In-memory repositories, directories and recording side channels
- InMemoryUnitOfWork to check rollback and published events
- Success and failure paths for every role gate

Coverage:
- CreateTicketService (code, due date, auto-assignment)
- UpdateTicketService (role gates, approval override, history)
- AssignTicketService / ApproveTicketService / CloseByCustomerService
- AddCommentService / AddAttachmentsService / DeleteAttachmentService
- GetTicketService / ListTicketsService / GetAssignmentHistoryService
- CheckOverdueTicketsService
"""

import pytest
from datetime import timedelta

from src.core.policy.entities import TicketSettings
from src.core.shared.clock import utcnow
from src.core.shared.collaborators import NotificationKind
from src.core.shared.exceptions import (
    AuthorizationError,
    ConflictError,
    EntityNotFoundError,
    IllegalTransitionError,
    TransientError,
    ValidationError,
)
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
from src.core.tickets.state_machine import TicketStatus
from src.core.tickets.use_cases import (
    AUTO_ASSIGN_NOTE,
    AddAttachmentsService,
    AddCommentService,
    ApproveTicketService,
    AssignTicketService,
    CheckOverdueTicketsService,
    CloseByCustomerService,
    CreateTicketService,
    DeleteAttachmentService,
    GetAssignmentHistoryService,
    GetTicketService,
    ListTicketsService,
    UpdateTicketService,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def deps(ticket_repo, uow, policy_provider, ticket_access, ticket_notifications, audit_logger):
    return dict(
        ticket_repo=ticket_repo,
        uow=uow,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=audit_logger,
    )


@pytest.fixture
def create_service(deps, customers, users):
    return CreateTicketService(customer_directory=customers, user_directory=users, **deps)


@pytest.fixture
def create_ticket(create_service):
    def _create(actor, **overrides):
        values = dict(
            actor=actor,
            title="Printer offline",
            description="The office printer does not answer to ping",
            customer_id="cust-1",
            priority="HIGH",
        )
        values.update(overrides)
        return create_service.execute(CreateTicketInputDTO(**values))
    return _create


@pytest.fixture
def assign(deps):
    def _assign(actor, ticket_id, assignee_id, note=""):
        return AssignTicketService(**deps).execute(
            AssignTicketInputDTO(actor=actor, ticket_id=ticket_id, assignee_id=assignee_id, note=note)
        )
    return _assign


@pytest.fixture
def update(deps):
    def _update(actor, ticket_id, comment="Working on it", **changes):
        return UpdateTicketService(**deps).execute(
            UpdateTicketInputDTO(actor=actor, ticket_id=ticket_id, comment=comment, changes=changes)
        )
    return _update


@pytest.fixture
def engineer_ticket(create_ticket, assign, manager):
    """Ticket created by mgr-1 and assigned to eng-1."""
    ticket = create_ticket(manager)
    return assign(manager, ticket.id, "eng-1")


def event_types(uow):
    return [e.event_type for e in uow.published_events]


# =============================================================================
# Create
# =============================================================================

class TestCreateTicketService:

    def test_create_ticket(self, create_ticket, manager, ticket_repo, uow, audit_logger):
        output = create_ticket(manager)

        assert output.status == "OPEN"
        assert output.code.startswith("TKT" + utcnow().strftime("%Y%m%d"))
        assert output.code.endswith("0001")
        assert output.due_date == output.created_at + timedelta(days=3)
        assert ticket_repo.get_by_id(output.id) is not None
        assert event_types(uow) == ["TicketCreatedEvent"]
        assert audit_logger.actions() == ["ticket.create"]

    def test_codes_are_sequential_per_day(self, create_ticket, manager):
        first = create_ticket(manager)
        second = create_ticket(manager)

        assert int(second.code[-4:]) == int(first.code[-4:]) + 1

    def test_due_date_follows_current_policy(self, create_ticket, manager, settings_repo):
        settings_repo.save(TicketSettings(priority_due_dates={"LOW": 10, "MEDIUM": 7, "HIGH": 2, "CRITICAL": 1}))

        output = create_ticket(manager)

        assert output.due_date == output.created_at + timedelta(days=2)

    def test_explicit_due_date(self, create_ticket, manager):
        due = utcnow() + timedelta(days=30)

        output = create_ticket(manager, due_date=due)

        assert output.due_date == due

    def test_inactive_customer(self, create_ticket, manager, ticket_repo):
        with pytest.raises(EntityNotFoundError):
            create_ticket(manager, customer_id="cust-off")

        assert ticket_repo.count() == 0

    def test_invalid_priority(self, create_ticket, manager):
        with pytest.raises(ValidationError) as exc:
            create_ticket(manager, priority="URGENT")

        assert exc.value.field == "priority"

    @pytest.mark.parametrize("overrides,field", [
        ({"item_metadata": ["serial"]}, "item_metadata"),
        ({"title": 12345}, "title"),
    ])
    def test_wrong_types_are_validation_errors(self, create_ticket, manager, ticket_repo, overrides, field):
        with pytest.raises(ValidationError) as exc:
            create_ticket(manager, **overrides)

        assert exc.value.field == field
        assert ticket_repo.count() == 0

    def test_engineer_cannot_create(self, create_ticket, engineer):
        with pytest.raises(AuthorizationError):
            create_ticket(engineer)

    def test_auto_assign_to_first_support_manager(self, create_ticket, other_manager, settings_repo, notifier, uow):
        settings_repo.save(TicketSettings(default_assign_to_support_manager=True))

        output = create_ticket(other_manager)

        assert output.status == "ASSIGNED"
        assert output.assigned_to == "mgr-1"
        assert output.assignment_history[0].note == AUTO_ASSIGN_NOTE
        assert notifier.recipients(NotificationKind.TICKET_ASSIGNED.value) == ["mgr-1"]
        assert event_types(uow) == ["TicketCreatedEvent", "TicketAssignedEvent"]

    def test_super_admin_tickets_are_not_auto_assigned(self, create_ticket, admin, settings_repo):
        settings_repo.save(TicketSettings(default_assign_to_support_manager=True))

        output = create_ticket(admin)

        assert output.status == "OPEN"
        assert output.assigned_to is None


# =============================================================================
# Update
# =============================================================================

class TestUpdateTicketService:

    def test_engineer_resolution_waits_for_approval(self, update, engineer_ticket, engineer, notifier):
        update(engineer, engineer_ticket.id, status="IN_PROGRESS")

        result = update(engineer, engineer_ticket.id, comment="Replaced the fuser", status="RESOLVED")

        assert result.requested_status == "RESOLVED"
        assert result.applied_status == "PENDING_APPROVAL"
        assert result.status_overridden is True
        assert result.ticket.status == "PENDING_APPROVAL"
        assert set(notifier.recipients(NotificationKind.TICKET_STATUS.value)) >= {"mgr-1", "mgr-2"}

    def test_auto_approved_resolution(self, update, engineer_ticket, engineer, settings_repo):
        settings_repo.save(TicketSettings(auto_approval=True, auto_approval_roles=[engineer.role]))

        result = update(engineer, engineer_ticket.id, status="RESOLVED")

        assert result.applied_status == "RESOLVED"
        assert result.status_overridden is False

    def test_update_records_comment_and_history(self, update, engineer_ticket, manager, ticket_repo):
        update(manager, engineer_ticket.id, comment="Raised priority, customer escalated", priority="CRITICAL")

        stored = ticket_repo.get_by_id(engineer_ticket.id)
        assert stored.priority.value == "CRITICAL"
        assert stored.comments[-1].is_system is True
        assert stored.comments[-1].is_internal is True
        assert stored.comments[-1].text == "Raised priority, customer escalated"
        last = stored.history[-1]
        assert last.note == "Raised priority, customer escalated"
        assert [(c.field, c.old, c.new) for c in last.changes] == [("priority", "HIGH", "CRITICAL")]

    def test_priority_change_keeps_due_date(self, update, engineer_ticket, manager):
        result = update(manager, engineer_ticket.id, priority="LOW")

        assert result.ticket.due_date == engineer_ticket.due_date

    def test_comment_required(self, update, engineer_ticket, manager):
        with pytest.raises(ValidationError) as exc:
            update(manager, engineer_ticket.id, comment="  ", priority="LOW")

        assert exc.value.field == "comment"

    def test_engineer_cannot_change_priority(self, update, engineer_ticket, engineer, ticket_repo):
        with pytest.raises(AuthorizationError):
            update(engineer, engineer_ticket.id, priority="LOW")

        assert ticket_repo.get_by_id(engineer_ticket.id).priority.value == "HIGH"

    def test_engineer_cannot_close(self, update, engineer_ticket, engineer):
        with pytest.raises(AuthorizationError):
            update(engineer, engineer_ticket.id, status="CLOSED_BY_CUSTOMER")

    def test_engineer_cannot_touch_other_tickets(self, update, engineer_ticket, other_engineer):
        with pytest.raises(AuthorizationError):
            update(other_engineer, engineer_ticket.id, status="IN_PROGRESS")

    def test_engineer_cannot_reassign(self, update, engineer_ticket, engineer):
        with pytest.raises(AuthorizationError):
            update(engineer, engineer_ticket.id, assigned_to="eng-2")

    def test_manager_must_use_assign_operation(self, update, engineer_ticket, manager):
        with pytest.raises(ValidationError) as exc:
            update(manager, engineer_ticket.id, assigned_to="eng-2")

        assert exc.value.field == "assigned_to"

    def test_illegal_transition_persists_nothing(self, update, engineer_ticket, manager, ticket_repo):
        before = ticket_repo.get_by_id(engineer_ticket.id)

        with pytest.raises(IllegalTransitionError):
            update(manager, engineer_ticket.id, title="Printer offline again", status="CLOSED")

        after = ticket_repo.get_by_id(engineer_ticket.id)
        assert after.version == before.version
        assert after.title == "Printer offline"

    def test_manager_self_assigns_when_starting_unassigned_ticket(self, create_ticket, update, manager, uow):
        ticket = create_ticket(manager)

        result = update(manager, ticket.id, status="IN_PROGRESS")

        assert result.self_assigned is True
        assert result.ticket.assigned_to == "mgr-1"
        assert "assigned_to" in result.changed_fields
        assert "TicketAssignedEvent" in event_types(uow)

    def test_status_notifications_can_be_disabled(self, update, engineer_ticket, engineer, settings_repo, notifier):
        settings_repo.save(TicketSettings(notify_on_status_change=False))
        notifier.clear()

        update(engineer, engineer_ticket.id, status="IN_PROGRESS")

        assert notifier.sent == []

    def test_notifier_failure_does_not_fail_update(self, update, engineer_ticket, engineer, notifier, ticket_repo):
        notifier.fail_with = TransientError("broker down", channel="notification")

        update(engineer, engineer_ticket.id, status="IN_PROGRESS")

        assert ticket_repo.get_by_id(engineer_ticket.id).status == TicketStatus.IN_PROGRESS

    def test_directory_failure_does_not_fail_update(self, update, engineer_ticket, engineer, users, notifier, ticket_repo):
        def unavailable(role):
            raise TransientError("directory unavailable", channel="directory")

        users.list_active_by_role = unavailable
        notifier.clear()

        result = update(engineer, engineer_ticket.id, comment="Replaced the fuser", status="RESOLVED")

        assert result.applied_status == "PENDING_APPROVAL"
        assert ticket_repo.get_by_id(engineer_ticket.id).status == TicketStatus.PENDING_APPROVAL
        assert notifier.sent == []

    def close_days_ago(self, ticket_repo, ticket_id, days):
        stored = ticket_repo.get_by_id(ticket_id)
        stored.status = TicketStatus.CLOSED
        stored.closed_by = "mgr-1"
        stored.closed_at = utcnow() - timedelta(days=days)
        ticket_repo.save(stored)

    def test_reopen_after_window(self, update, engineer_ticket, manager, ticket_repo, settings_repo):
        settings_repo.save(TicketSettings(reopen_window_days=30))
        self.close_days_ago(ticket_repo, engineer_ticket.id, 40)

        with pytest.raises(ConflictError) as exc:
            update(manager, engineer_ticket.id, comment="Customer called back", status="REOPENED")

        assert exc.value.rule == "reopen_window_expired"
        assert ticket_repo.get_by_id(engineer_ticket.id).status == TicketStatus.CLOSED

    def test_reopen_within_window(self, update, engineer_ticket, manager, ticket_repo, settings_repo):
        settings_repo.save(TicketSettings(reopen_window_days=30))
        self.close_days_ago(ticket_repo, engineer_ticket.id, 10)

        result = update(manager, engineer_ticket.id, comment="Customer called back", status="REOPENED")

        assert result.applied_status == "REOPENED"
        stored = ticket_repo.get_by_id(engineer_ticket.id)
        assert stored.status == TicketStatus.REOPENED
        assert stored.closed_at is None
        assert stored.closed_by is None

    def test_unknown_ticket(self, update, manager):
        with pytest.raises(EntityNotFoundError):
            update(manager, "missing", status="IN_PROGRESS")


# =============================================================================
# Assign
# =============================================================================

class TestAssignTicketService:

    def test_assign(self, create_ticket, assign, manager, notifier, uow):
        ticket = create_ticket(manager)

        output = assign(manager, ticket.id, "eng-1", "Closest engineer")

        assert output.status == "ASSIGNED"
        assert output.assigned_to == "eng-1"
        assert output.assigned_by == "mgr-1"
        assert output.assignment_history[0].note == "Closest engineer"
        assert notifier.recipients(NotificationKind.TICKET_ASSIGNED.value) == ["eng-1"]
        assert event_types(uow)[-2:] == ["TicketAssignedEvent", "TicketStatusChangedEvent"]

    def test_reassign_appends_record(self, engineer_ticket, assign, manager):
        output = assign(manager, engineer_ticket.id, "eng-2", "Handover")

        assert [r.assigned_to for r in output.assignment_history] == ["eng-1", "eng-2"]
        assert output.assigned_to == "eng-2"

    def test_history_service(self, engineer_ticket, assign, manager, ticket_repo, ticket_access):
        assign(manager, engineer_ticket.id, "eng-2")

        history = GetAssignmentHistoryService(ticket_repo, ticket_access).execute(manager, engineer_ticket.id)

        assert [r.assigned_to for r in history] == ["eng-1", "eng-2"]

    def test_cannot_assign_to_higher_role(self, create_ticket, assign, manager):
        ticket = create_ticket(manager)

        with pytest.raises(AuthorizationError):
            assign(manager, ticket.id, "admin-1")

    def test_super_admin_assigns_anyone(self, create_ticket, assign, admin):
        ticket = create_ticket(admin)

        assert assign(admin, ticket.id, "admin-1").assigned_to == "admin-1"

    def test_inactive_assignee(self, create_ticket, assign, manager):
        ticket = create_ticket(manager)

        with pytest.raises(ValidationError):
            assign(manager, ticket.id, "eng-off")

    def test_inventory_manager_is_not_assignable(self, create_ticket, assign, admin):
        ticket = create_ticket(admin)

        with pytest.raises(ValidationError):
            assign(admin, ticket.id, "inv-1")

    def test_unknown_assignee(self, create_ticket, assign, manager):
        ticket = create_ticket(manager)

        with pytest.raises(EntityNotFoundError):
            assign(manager, ticket.id, "nobody")

    def test_engineer_cannot_assign(self, engineer_ticket, assign, engineer):
        with pytest.raises(AuthorizationError):
            assign(engineer, engineer_ticket.id, "eng-2")


# =============================================================================
# Approve / close by customer
# =============================================================================

class TestApproveTicketService:

    @pytest.fixture
    def pending_ticket(self, engineer_ticket, update, engineer):
        update(engineer, engineer_ticket.id, status="RESOLVED")
        return engineer_ticket

    def test_approve(self, deps, pending_ticket, manager, notifier):
        notifier.clear()

        output = ApproveTicketService(**deps).execute(
            ApproveTicketInputDTO(actor=manager, ticket_id=pending_ticket.id, reason="Verified on site")
        )

        assert output.status == "RESOLVED"
        assert output.approved_by == "mgr-1"
        assert output.comments[-1]["text"] == "Approved: Verified on site"
        assert notifier.recipients(NotificationKind.TICKET_APPROVED.value) == ["eng-1"]

    def test_reason_required(self, deps, pending_ticket, manager):
        with pytest.raises(ValidationError):
            ApproveTicketService(**deps).execute(
                ApproveTicketInputDTO(actor=manager, ticket_id=pending_ticket.id, reason="")
            )

    def test_engineer_cannot_approve(self, deps, pending_ticket, engineer):
        with pytest.raises(AuthorizationError):
            ApproveTicketService(**deps).execute(
                ApproveTicketInputDTO(actor=engineer, ticket_id=pending_ticket.id, reason="Looks fine")
            )

    def test_only_pending_tickets(self, deps, engineer_ticket, manager):
        with pytest.raises(ConflictError):
            ApproveTicketService(**deps).execute(
                ApproveTicketInputDTO(actor=manager, ticket_id=engineer_ticket.id, reason="Early")
            )


class TestCloseByCustomerService:

    def test_close(self, deps, engineer_ticket, manager):
        result = CloseByCustomerService(**deps).execute(
            CloseByCustomerInputDTO(actor=manager, ticket_id=engineer_ticket.id, reason="Works again")
        )

        assert result.applied_status == "CLOSED_BY_CUSTOMER"
        assert result.ticket.closed_by == "mgr-1"
        assert result.ticket.comments[-1]["text"] == "Closed by customer: Works again"

    def test_closed_ticket_cannot_close_again_differently(self, deps, engineer_ticket, manager, update):
        CloseByCustomerService(**deps).execute(
            CloseByCustomerInputDTO(actor=manager, ticket_id=engineer_ticket.id)
        )

        with pytest.raises(IllegalTransitionError):
            update(manager, engineer_ticket.id, status="CLOSED")


# =============================================================================
# Comments / attachments
# =============================================================================

class TestAddCommentService:

    def test_internal_comment_reaches_managers(self, deps, engineer_ticket, engineer, notifier):
        notifier.clear()

        AddCommentService(**deps).execute(
            AddCommentInputDTO(actor=engineer, ticket_id=engineer_ticket.id, text="Need a new fuser", is_internal=True)
        )

        assert notifier.recipients(NotificationKind.TICKET_COMMENT.value) == ["mgr-1", "mgr-2"]

    def test_external_comment_reaches_creator(self, deps, engineer_ticket, engineer, notifier):
        notifier.clear()

        output = AddCommentService(**deps).execute(
            AddCommentInputDTO(
                actor=engineer,
                ticket_id=engineer_ticket.id,
                text="On my way",
                attachments=(AttachmentInputDTO("photo.jpg", "https://files.example/photo.jpg"),),
            )
        )

        assert notifier.recipients(NotificationKind.TICKET_COMMENT.value) == ["mgr-1"]
        assert output.comments[-1]["attachments"][0]["file_name"] == "photo.jpg"

    def test_directory_failure_does_not_fail_comment(self, deps, engineer_ticket, engineer, users, ticket_repo):
        def unavailable(role):
            raise TransientError("directory unavailable", channel="directory")

        users.list_active_by_role = unavailable

        AddCommentService(**deps).execute(
            AddCommentInputDTO(actor=engineer, ticket_id=engineer_ticket.id, text="Need a new fuser", is_internal=True)
        )

        assert ticket_repo.get_by_id(engineer_ticket.id).comments[-1].text == "Need a new fuser"

    def test_stranger_cannot_comment(self, deps, engineer_ticket, other_engineer):
        with pytest.raises(AuthorizationError):
            AddCommentService(**deps).execute(
                AddCommentInputDTO(actor=other_engineer, ticket_id=engineer_ticket.id, text="Hello")
            )


class TestAddAttachmentsService:

    def test_add(self, deps, engineer_ticket, engineer):
        output = AddAttachmentsService(**deps).execute(
            AddAttachmentsInputDTO(
                actor=engineer,
                ticket_id=engineer_ticket.id,
                attachments=(AttachmentInputDTO("report.pdf", "https://files.example/report.pdf", "application/pdf", 2048),),
            )
        )

        assert output.attachments[0]["uploaded_by"] == "eng-1"
        assert output.history[-1]["attachments_added"] == ["report.pdf"]

    def test_empty(self, deps, engineer_ticket, engineer):
        with pytest.raises(ValidationError):
            AddAttachmentsService(**deps).execute(
                AddAttachmentsInputDTO(actor=engineer, ticket_id=engineer_ticket.id)
            )


class TestDeleteAttachmentService:

    @pytest.fixture
    def attached(self, deps, engineer_ticket, engineer):
        return AddAttachmentsService(**deps).execute(
            AddAttachmentsInputDTO(
                actor=engineer,
                ticket_id=engineer_ticket.id,
                attachments=(
                    AttachmentInputDTO("report.pdf", "https://files.example/report.pdf"),
                    AttachmentInputDTO("photo.jpg", "https://files.example/photo.jpg"),
                ),
            )
        )

    def delete(self, deps, actor, ticket_id, attachment_id):
        return DeleteAttachmentService(**deps).execute(
            DeleteAttachmentInputDTO(actor=actor, ticket_id=ticket_id, attachment_id=attachment_id)
        )

    def test_delete(self, deps, attached, engineer, ticket_repo, audit_logger, uow):
        report_id = attached.attachments[0]["id"]

        output = self.delete(deps, engineer, attached.id, report_id)

        assert [a["file_name"] for a in output.attachments] == ["photo.jpg"]
        last = ticket_repo.get_by_id(attached.id).history[-1]
        assert last.action == "attachment_deleted"
        assert last.attachments_removed == ("report.pdf",)
        assert audit_logger.actions()[-1] == "ticket.attachment_delete"
        assert event_types(uow)[-1] == "TicketUpdatedEvent"

    def test_unknown_attachment(self, deps, attached, engineer, ticket_repo):
        with pytest.raises(EntityNotFoundError) as exc:
            self.delete(deps, engineer, attached.id, "missing")

        assert exc.value.entity_type == "Attachment"
        assert len(ticket_repo.get_by_id(attached.id).attachments) == 2

    def test_other_engineer_is_forbidden(self, deps, attached, other_engineer, ticket_repo):
        with pytest.raises(AuthorizationError):
            self.delete(deps, other_engineer, attached.id, attached.attachments[0]["id"])

        assert len(ticket_repo.get_by_id(attached.id).attachments) == 2


# =============================================================================
# Queries
# =============================================================================

class TestQueries:

    @pytest.fixture
    def tickets(self, create_ticket, assign, admin, manager, other_manager):
        t1 = assign(manager, create_ticket(manager).id, "eng-1")
        t2 = create_ticket(other_manager, priority="LOW")
        t3 = assign(admin, create_ticket(admin).id, "mgr-2")
        return t1, t2, t3

    @pytest.fixture
    def list_service(self, ticket_repo, ticket_access):
        return ListTicketsService(ticket_repo, ticket_access)

    def codes(self, rows):
        return sorted(r.code for r in rows)

    def test_engineer_sees_own_tickets(self, tickets, list_service, engineer):
        t1, _, _ = tickets

        assert self.codes(list_service.execute(engineer)) == [t1.code]

    def test_manager_sees_own_and_engineer_tickets(self, tickets, list_service, manager, other_manager):
        t1, t2, t3 = tickets

        assert self.codes(list_service.execute(manager)) == [t1.code]
        assert self.codes(list_service.execute(other_manager)) == sorted([t1.code, t2.code, t3.code])

    def test_super_admin_sees_everything(self, tickets, list_service, admin):
        assert len(list_service.execute(admin)) == 3

    def test_filters(self, tickets, list_service, admin):
        _, t2, _ = tickets

        rows = list_service.execute(admin, TicketFilterDTO(priority="low"))

        assert self.codes(rows) == [t2.code]

    def test_invalid_filter(self, tickets, list_service, admin):
        with pytest.raises(ValidationError):
            list_service.execute(admin, TicketFilterDTO(status="ARCHIVED"))

    def test_inventory_manager_cannot_list(self, list_service, stock_manager):
        with pytest.raises(AuthorizationError):
            list_service.execute(stock_manager)

    def test_get_ticket_visibility(self, tickets, ticket_repo, ticket_access, engineer, other_engineer):
        t1, _, _ = tickets
        service = GetTicketService(ticket_repo, ticket_access)

        assert service.execute(engineer, t1.id).code == t1.code
        with pytest.raises(AuthorizationError):
            service.execute(other_engineer, t1.id)
        with pytest.raises(EntityNotFoundError):
            service.execute(engineer, "missing")


class TestCheckOverdueTicketsService:

    def test_notifies_assignee_of_overdue_tickets(self, create_ticket, assign, manager, ticket_repo, ticket_notifications, notifier):
        late = create_ticket(manager, due_date=utcnow() - timedelta(days=1))
        assign(manager, late.id, "eng-1")
        create_ticket(manager)
        notifier.clear()

        codes = CheckOverdueTicketsService(ticket_repo, ticket_notifications).execute()

        assert codes == [late.code]
        assert notifier.recipients(NotificationKind.TICKET_OVERDUE.value) == ["eng-1"]
