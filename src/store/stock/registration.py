"""Catalog boundary: registering items and editing their details."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from store.domain import store
from store.errors import InvalidOperationError
from store.stock.item import ItemCategory, StockItem, load_item


@store.command(part_of="StockItem")
class RegisterItem:
    item_id = Identifier()
    name = String(required=True, max_length=255)
    quantity = Integer(min_value=0, default=0)
    low_stock_threshold = Integer(min_value=0)
    price = Float(min_value=0.0, default=0.0)
    supplier_id = Identifier()
    category = String(choices=ItemCategory)


@store.command(part_of="StockItem")
class UpdateItemDetails:
    item_id = Identifier(required=True)
    name = String(max_length=255)
    price = Float(min_value=0.0)
    low_stock_threshold = Integer(min_value=0)
    supplier_id = Identifier()
    category = String(choices=ItemCategory)


@store.command_handler(part_of=StockItem)
class ItemCatalogHandler:
    @handle(RegisterItem)
    def register_item(self, command):
        repo = current_domain.repository_for(StockItem)
        if command.item_id and repo._dao.query.filter(id=command.item_id).all().items:
            raise InvalidOperationError(f"Item {command.item_id} is already registered", item_id=command.item_id)

        item = StockItem.register(
            name=command.name,
            quantity=command.quantity or 0,
            low_stock_threshold=command.low_stock_threshold,
            price=command.price or 0.0,
            supplier_id=command.supplier_id,
            category=command.category,
            item_id=command.item_id,
        )
        repo.add(item)
        return str(item.id)

    @handle(UpdateItemDetails)
    def update_item_details(self, command):
        item = load_item(command.item_id)
        item.update_details(
            name=command.name,
            price=command.price,
            low_stock_threshold=command.low_stock_threshold,
            supplier_id=command.supplier_id,
            category=command.category,
        )
        current_domain.repository_for(StockItem).add(item)
