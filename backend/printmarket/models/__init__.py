from .customizations import CustomizationRequest, PaymentRecord
from .orders import Order, OrderItem
from .profiles import DesignerProfile, ShopProfile, Product
from .earnings import DesignerEarning

__all__ = [
    'CustomizationRequest', 'PaymentRecord',
    'Order', 'OrderItem',
    'DesignerProfile', 'ShopProfile', 'Product',
    'DesignerEarning',
]
