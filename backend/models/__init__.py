# Importing every model registers its table on Base.metadata and lets string relationships resolve.
from models.users import User
from models.supplier import Supplier
from models.product import Category, Product
from models.location import Location, ProductStock
from models.stock import StockMovement, MovementType, ReferenceType
from models.batch import Batch
from models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from models.reorder import ReorderRule
from models.sale import Sale, SaleItem
from models.log import ActivityLog
