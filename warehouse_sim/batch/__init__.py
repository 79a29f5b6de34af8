# warehouse_sim/batch/__init__.py

from .day_tick import run_warehouse_day_tick
from .settlement_job import run_settlement_job, settle_warehouse
from .advance_day import advance_company_day

__all__ = [
    'run_warehouse_day_tick',
    'run_settlement_job',
    'settle_warehouse',
    'advance_company_day'
]
