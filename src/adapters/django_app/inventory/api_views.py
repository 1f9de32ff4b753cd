"""
JSON API views for the inventory stock ledger.

Endpoints:
- GET  /api/inventory/items/ - List items (?item_type=, ?low_stock=1)
- POST /api/inventory/items/ - Create item with opening stock
- GET  /api/inventory/items/<id>/ - Item detail
- PATCH /api/inventory/items/<id>/ - Change reorder point
- GET  /api/inventory/items/<id>/movements/ - Movement journal
- POST /api/inventory/items/<id>/dispatch/ - Dispatch stock
- POST /api/inventory/items/<id>/return/ - Return stock
"""

import logging

from django.http import HttpRequest, JsonResponse

from src.core.inventory.dtos import (
    CreateItemInputDTO,
    StockMovementInputDTO,
    UpdateReorderPointInputDTO,
)
from src.core.shared.exceptions import ValidationError

from ..shared.http import BaseAPIView, json_response, paginate

logger = logging.getLogger(__name__)


def movement_input(actor, item_id: str, data: dict) -> StockMovementInputDTO:
    """
    Body JSON:
    {
        "quantity": int (required),
        "condition": "NEW|REPAIRED|REPARABLE" (required),
        "reference_kind": "TICKET|INSTALLATION_REQUEST" (required),
        "reference_id": "string (required)",
        "docket_number": "string (optional)",
        "note": "string (optional)"
    }
    """
    return StockMovementInputDTO(
        actor=actor,
        item_id=item_id,
        quantity=data.get('quantity'),
        condition=data.get('condition', ''),
        reference_kind=data.get('reference_kind', ''),
        reference_id=data.get('reference_id', ''),
        docket_number=data.get('docket_number'),
        note=data.get('note', ''),
    )


class ItemAPIListView(BaseAPIView):
    """
    GET /api/inventory/items/
    POST /api/inventory/items/
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            items = self.get_service('list_items_service').execute(
                actor,
                item_type=request.GET.get('item_type') or None,
                low_stock_only=request.GET.get('low_stock') in ('1', 'true', 'yes'),
            )
            page, meta = paginate(request, items)
            return json_response(success=True, data=[i.to_dict() for i in page], meta=meta)

        except Exception as e:
            return self.handle_exception(e)

    def post(self, request: HttpRequest) -> JsonResponse:
        """
        Body JSON:
        {
            "name": "string (required)",
            "item_type": "string (required)",
            "reorder_point": int (optional, default 0),
            "stock": {"NEW": 10, "REPAIRED": 2} (optional),
            "locations": {"NEW": "Shelf A"} (optional)
        }
        """
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            input_dto = CreateItemInputDTO(
                actor=actor,
                name=data.get('name', ''),
                item_type=data.get('item_type', ''),
                reorder_point=data.get('reorder_point', 0),
                stock=data.get('stock') or {},
                locations=data.get('locations') or {},
            )
            output = self.get_service('create_inventory_item_service').execute(input_dto)
            logger.info(f"API: inventory item created {output.id}")

            return json_response(success=True, data=output.to_dict(), status=201)

        except Exception as e:
            return self.handle_exception(e)


class ItemAPIDetailView(BaseAPIView):
    """
    GET /api/inventory/items/<id>/
    PATCH /api/inventory/items/<id>/ - {"reorder_point": int}
    """

    def get(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            item = self.get_service('get_item_service').execute(actor, pk)
            return json_response(success=True, data=item.to_dict())

        except Exception as e:
            return self.handle_exception(e)

    def patch(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            if 'reorder_point' not in data:
                raise ValidationError("reorder_point is required", field='reorder_point')

            input_dto = UpdateReorderPointInputDTO(
                actor=actor,
                item_id=pk,
                reorder_point=data['reorder_point'],
            )
            item = self.get_service('update_reorder_point_service').execute(input_dto)

            return json_response(success=True, data=item.to_dict())

        except Exception as e:
            return self.handle_exception(e)


class ItemAPIMovementsView(BaseAPIView):
    """GET /api/inventory/items/<id>/movements/"""

    def get(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            movements = self.get_service('list_movements_service').execute(actor, pk)
            page, meta = paginate(request, movements)
            return json_response(success=True, data=[m.to_dict() for m in page], meta=meta)

        except Exception as e:
            return self.handle_exception(e)


class ItemAPIDispatchView(BaseAPIView):
    """POST /api/inventory/items/<id>/dispatch/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            result = self.get_service('dispatch_part_service').execute(
                movement_input(actor, pk, data)
            )
            logger.info(
                f"API: dispatched {result.movement.quantity} of item {pk} "
                f"against {result.movement.reference_kind} {result.movement.reference_id}"
            )

            return json_response(success=True, data=result.to_dict(), status=201)

        except Exception as e:
            return self.handle_exception(e)


class ItemAPIReturnView(BaseAPIView):
    """POST /api/inventory/items/<id>/return/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        try:
            actor = self.get_actor(request)
            data = self.parse_body(request)

            result = self.get_service('return_part_service').execute(
                movement_input(actor, pk, data)
            )

            return json_response(success=True, data=result.to_dict(), status=201)

        except Exception as e:
            return self.handle_exception(e)
