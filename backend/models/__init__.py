"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Models Package                                                  ║
║                                                                              ║
║  from models import PoolState, LeadOrigin, CompanyPolicy, etc.               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from .lead import (
    PoolState,
    LeadOrigin,
    PoolLead,
    LeadPoolError,
    OWNERSHIP_FIELDS,
)

from .company import CompanyPolicy
