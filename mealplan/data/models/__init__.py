# every model imported here so SQLAlchemy registers it in Base.metadata

from mealplan.data.models.customer import CustomerModel
from mealplan.data.models.cart import CartModel
from mealplan.data.models.cart_item import CartItemModel
from mealplan.data.models.order import OrderModel
from mealplan.data.models.order_item import OrderItemModel

__all__ = ["CustomerModel", "CartModel", "CartItemModel", "OrderModel", "OrderItemModel"]
