from .base import CorporateIntegrityError, FilterParam, Pagination, Repository, SelectResult
from .category import CategoryFilter, CategoryOrder, CategoryRepository
from .client import ClientFilter, ClientOrder, ClientRepository
from .employee import EmployeeFilter, EmployeeOrder, EmployeeRepository
from .product import ProductFilter, ProductOrder, ProductRepository, SoldQuantityFilter
from .query_builder import OrderParam, SqlQueryBuilder
from .query_strategy import QueryStrategy, QueryStrategyError, SelectStrategy
from .receipt import ReceiptFilter, ReceiptOrder, ReceiptRepository
from .store_product import StoreProductFilter, StoreProductOrder, StoreProductRepository

__all__ = [
    "CategoryFilter",
    "CategoryOrder",
    "CategoryRepository",
    "ClientFilter",
    "ClientOrder",
    "ClientRepository",
    "CorporateIntegrityError",
    "EmployeeFilter",
    "EmployeeOrder",
    "EmployeeRepository",
    "FilterParam",
    "OrderParam",
    "Pagination",
    "ProductFilter",
    "ProductOrder",
    "ProductRepository",
    "QueryStrategy",
    "QueryStrategyError",
    "ReceiptFilter",
    "ReceiptOrder",
    "ReceiptRepository",
    "Repository",
    "SelectResult",
    "SelectStrategy",
    "SoldQuantityFilter",
    "SqlQueryBuilder",
    "StoreProductFilter",
    "StoreProductOrder",
    "StoreProductRepository",
]
