"""
Django implementations of the UserDirectory and CustomerDirectory ports.
"""

from typing import List, Optional

from src.core.shared.collaborators import CustomerRef, UserRef
from src.core.shared.roles import Role

from .models import CustomerModel, StaffMemberModel


def _user_ref(model: StaffMemberModel) -> UserRef:
    return UserRef(
        user_id=model.id,
        role=Role(model.role),
        is_active=model.is_active,
        name=model.name,
        email=model.email,
    )


class DjangoUserDirectory:
    """
    Staff lookup.

    ``list_active_by_role`` is ordered by name, so "the first active
    Support Manager" used by auto-assignment is deterministic.
    """

    def get_user(self, user_id: str) -> Optional[UserRef]:
        try:
            return _user_ref(StaffMemberModel.objects.get(id=user_id))
        except StaffMemberModel.DoesNotExist:
            return None

    def list_active_by_role(self, role: Role) -> List[UserRef]:
        queryset = StaffMemberModel.objects.filter(role=role.value, is_active=True).order_by('name', 'id')
        return [_user_ref(m) for m in queryset]


class DjangoCustomerDirectory:

    def get_active_customer(self, customer_id: str) -> Optional[CustomerRef]:
        model = CustomerModel.objects.filter(id=customer_id, is_active=True).first()
        if model is None:
            return None
        return CustomerRef(customer_id=model.id, name=model.name, is_active=True)
