from .users import User
from .inventory import Product, InventoryTransaction
from .sales import Sale, SaleItem, Payment, Commission, Return, ReturnItem
from .registers import CashRegister, CashMovement
from .customers import Customer, CreditTransaction, LoyaltyTransaction, LoyaltyProgram
from .suppliers import Supplier, PurchaseOrder, PurchaseOrderItem, ReliabilityEvent
from .finance import (
    ExpenseCategory, CostCenter, FinancialTransaction, FinancialLog, Installment, RecurringEntry,
)

__all__ = [
    'User',
    'Product', 'InventoryTransaction',
    'Sale', 'SaleItem', 'Payment', 'Commission', 'Return', 'ReturnItem',
    'CashRegister', 'CashMovement',
    'Customer', 'CreditTransaction', 'LoyaltyTransaction', 'LoyaltyProgram',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderItem', 'ReliabilityEvent',
    'ExpenseCategory', 'CostCenter', 'FinancialTransaction', 'FinancialLog',
    'Installment', 'RecurringEntry',
]
