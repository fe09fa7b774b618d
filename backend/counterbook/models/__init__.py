from .tenancy import Tenant
from .customers import Customer
from .documents import DailyCounter, Invoice, Order, ServiceJob, SalesReturn
from .ledger import WalletAccount, DailyStatsEntry, ReconciliationLock

__all__ = [
    'Tenant', 'Customer',
    'DailyCounter', 'Invoice', 'Order', 'ServiceJob', 'SalesReturn',
    'WalletAccount', 'DailyStatsEntry', 'ReconciliationLock',
]
