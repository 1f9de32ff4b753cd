"""
Inventory domain entities.

Entities:
- InventoryItem: aggregate owning condition buckets and the movement journal
- StockEntry: quantity (and optional location) of one condition bucket
- InventoryMovement: immutable journal entry
- MovementReference: what a movement was made for (ticket or installation)
- StockChange: outcome of a dispatch or return

Every movement takes effect immediately: the journal entry is written
COMPLETED in the same transaction as the quantity change, so

    sum(DISPATCH) - sum(RETURN) == initial_quantity - quantity

holds after every operation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional
import uuid

from src.core.shared.clock import utcnow
from src.core.shared.exceptions import InsufficientStockError, ValidationError
from src.core.shared.validation import clean_mapping, clean_optional_text, clean_text


class StockCondition(Enum):
    NEW = "NEW"
    REPAIRED = "REPAIRED"
    REPARABLE = "REPARABLE"

    @classmethod
    def from_string(cls, value: str) -> "StockCondition":
        if isinstance(value, StockCondition):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid condition: {value}")


class ItemStatus(Enum):
    AVAILABLE = "AVAILABLE"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class MovementType(Enum):
    DISPATCH = "DISPATCH"
    RETURN = "RETURN"


class MovementStatus(Enum):
    COMPLETED = "COMPLETED"


class ReferenceKind(Enum):
    TICKET = "TICKET"
    INSTALLATION_REQUEST = "INSTALLATION_REQUEST"

    @classmethod
    def from_string(cls, value: str) -> "ReferenceKind":
        if isinstance(value, ReferenceKind):
            return value
        try:
            return cls[str(value).strip().upper().replace(" ", "_")]
        except KeyError:
            raise ValueError(f"Invalid reference kind: {value}")


@dataclass(frozen=True)
class MovementReference:
    """
    Tagged reference to the entity a movement was made for.

    Example:
        MovementReference.ticket(ticket.id)
        MovementReference(ReferenceKind.INSTALLATION_REQUEST, "ir-42")
    """

    kind: ReferenceKind
    id: str

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Movement reference id is required", field="reference")

    @classmethod
    def ticket(cls, ticket_id: str) -> "MovementReference":
        return cls(ReferenceKind.TICKET, ticket_id)

    @classmethod
    def installation_request(cls, request_id: str) -> "MovementReference":
        return cls(ReferenceKind.INSTALLATION_REQUEST, request_id)

    @property
    def is_ticket(self) -> bool:
        return self.kind == ReferenceKind.TICKET

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "id": self.id}


@dataclass
class StockEntry:
    condition: StockCondition
    quantity: int = 0
    location: Optional[str] = None


@dataclass(frozen=True)
class InventoryMovement:
    """
    Journal entry.

    Attributes:
        movement_type: DISPATCH (outward) or RETURN (inward)
        quantity: Always > 0
        condition: Bucket that was debited or credited
        reference: Ticket or installation request
        balance_after: Item quantity right after the movement
    """

    id: str
    movement_type: MovementType
    quantity: int
    condition: StockCondition
    reference: MovementReference
    actor_id: str
    occurred_at: datetime
    balance_after: int
    status: MovementStatus = MovementStatus.COMPLETED
    docket_number: Optional[str] = None
    note: str = ""


@dataclass(frozen=True)
class StockChange:
    """
    Result of a dispatch or return.

    ``crossed_threshold`` is True only when this movement took the item
    from above its reorder point to at or below it.
    """

    movement: InventoryMovement
    previous_quantity: int
    new_quantity: int
    crossed_threshold: bool = False


@dataclass
class InventoryItem:
    """
    Domain Entity: inventory item (aggregate root).

    The item counter always equals the sum of its condition buckets.

    Attributes:
        id: Internal UUID
        name: Display name
        item_type: Category of part (e.g. "Printer", "Router")
        reorder_point: Quantity at or below which stock is low
        entries: Condition -> bucket
        quantity: Total on hand (sum of buckets)
        initial_quantity: Stock recorded when the item was created
        movements: Append-only journal
        version: Optimistic concurrency counter

    Example:
        item = InventoryItem.create("Toner X200", "Consumable", 5, {"NEW": 10})
        change = item.dispatch(2, StockCondition.NEW, MovementReference.ticket("t-1"), "eng-1")
        assert change.new_quantity == 8
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    item_type: str = ""
    reorder_point: int = 0
    entries: Dict[StockCondition, StockEntry] = field(default_factory=dict)
    quantity: int = 0
    initial_quantity: int = 0
    movements: List[InventoryMovement] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0

    @classmethod
    def create(
        cls,
        name: str,
        item_type: str,
        reorder_point: int = 0,
        stock: Optional[Mapping[str, int]] = None,
        locations: Optional[Mapping[str, str]] = None,
        created_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "InventoryItem":
        """
        Factory method.

        Args:
            stock: Condition name -> opening quantity
            locations: Condition name -> storage location

        Raises:
            ValidationError: Invalid name, reorder point or quantities
        """
        name = clean_text(name, "name")
        if not name:
            raise ValidationError("Item name is required", field="name")
        item_type = clean_text(item_type, "item_type")
        if not item_type:
            raise ValidationError("Item type is required", field="item_type")
        cls._validate_reorder_point(reorder_point)

        entries = {}
        for raw, qty in clean_mapping(stock, "stock").items():
            condition = cls._condition(raw)
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                raise ValidationError(
                    f"Opening quantity for {condition.value} must be a non-negative integer",
                    field="stock",
                )
            entries[condition] = StockEntry(condition, qty)
        for raw, location in clean_mapping(locations, "locations").items():
            condition = cls._condition(raw)
            entries.setdefault(condition, StockEntry(condition)).location = clean_optional_text(location, "locations")

        at = now or utcnow()
        total = sum(e.quantity for e in entries.values())
        return cls(
            name=name,
            item_type=item_type,
            reorder_point=reorder_point,
            entries=entries,
            quantity=total,
            initial_quantity=total,
            created_by=created_by,
            created_at=at,
            updated_at=at,
        )

    @staticmethod
    def _condition(raw) -> StockCondition:
        try:
            return StockCondition.from_string(raw)
        except ValueError as e:
            raise ValidationError(str(e), field="condition")

    @staticmethod
    def _validate_reorder_point(value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError("Reorder point must be a non-negative integer", field="reorder_point")

    @staticmethod
    def _validate_quantity(quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", field="quantity")

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def status(self) -> ItemStatus:
        return ItemStatus.OUT_OF_STOCK if self.quantity == 0 else ItemStatus.AVAILABLE

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_point

    def on_hand(self, condition: StockCondition) -> int:
        entry = self.entries.get(condition)
        return entry.quantity if entry else 0

    def journal_balance(self) -> int:
        """Dispatched minus returned, over the whole journal."""
        balance = 0
        for movement in self.movements:
            if movement.movement_type == MovementType.DISPATCH:
                balance += movement.quantity
            else:
                balance -= movement.quantity
        return balance

    def is_consistent(self) -> bool:
        return (
            self.quantity == sum(e.quantity for e in self.entries.values())
            and self.journal_balance() == self.initial_quantity - self.quantity
        )

    def _crossed(self, previous: int, new: int) -> bool:
        return previous > self.reorder_point >= new

    # =========================================================================
    # Ledger operations
    # =========================================================================

    def dispatch(
        self,
        quantity: int,
        condition: StockCondition,
        reference: MovementReference,
        actor_id: str,
        docket_number: Optional[str] = None,
        note: str = "",
        now: Optional[datetime] = None,
    ) -> StockChange:
        """
        Take stock out of a condition bucket.

        Raises:
            ValidationError: Quantity not a positive integer
            InsufficientStockError: Bucket holds less than ``quantity``
        """
        self._validate_quantity(quantity)
        available = self.on_hand(condition)
        if quantity > available:
            raise InsufficientStockError(self.id, condition.value, quantity, available)

        previous = self.quantity
        self.entries[condition].quantity -= quantity
        self.quantity -= quantity
        movement = self._journal(
            MovementType.DISPATCH, quantity, condition, reference, actor_id, docket_number, note, now
        )
        return StockChange(movement, previous, self.quantity, self._crossed(previous, self.quantity))

    def return_stock(
        self,
        quantity: int,
        condition: StockCondition,
        reference: MovementReference,
        actor_id: str,
        docket_number: Optional[str] = None,
        note: str = "",
        now: Optional[datetime] = None,
    ) -> StockChange:
        """
        Put stock back into a condition bucket.

        There is no upper bound: stock that was never itemized may be
        returned, and the journal still balances.

        Raises:
            ValidationError: Quantity not a positive integer
        """
        self._validate_quantity(quantity)
        previous = self.quantity
        self.entries.setdefault(condition, StockEntry(condition)).quantity += quantity
        self.quantity += quantity
        movement = self._journal(
            MovementType.RETURN, quantity, condition, reference, actor_id, docket_number, note, now
        )
        return StockChange(movement, previous, self.quantity, False)

    def update_reorder_point(self, reorder_point: int, now: Optional[datetime] = None) -> bool:
        """
        Change the reorder point.

        Returns:
            True if the new threshold newly covers the current quantity
        """
        self._validate_reorder_point(reorder_point)
        previous = self.reorder_point
        self.reorder_point = reorder_point
        self.updated_at = now or utcnow()
        return previous < self.quantity <= reorder_point

    def _journal(
        self,
        movement_type: MovementType,
        quantity: int,
        condition: StockCondition,
        reference: MovementReference,
        actor_id: str,
        docket_number: Optional[str],
        note: str,
        now: Optional[datetime],
    ) -> InventoryMovement:
        at = now or utcnow()
        movement = InventoryMovement(
            id=str(uuid.uuid4()),
            movement_type=movement_type,
            quantity=quantity,
            condition=condition,
            reference=reference,
            actor_id=actor_id,
            occurred_at=at,
            balance_after=self.quantity,
            docket_number=docket_number or None,
            note=note,
        )
        self.movements.append(movement)
        self.updated_at = at
        return movement

    def __repr__(self) -> str:
        return (
            f"InventoryItem("
            f"name={self.name}, "
            f"quantity={self.quantity}, "
            f"reorder_point={self.reorder_point}, "
            f"version={self.version}"
            f")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InventoryItem):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
