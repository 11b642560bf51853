"""
Lead Pool - service wiring

One LeadPool per database handle. Routes and the scheduler build it from
the injected db so tests can swap the database without touching globals.
"""

from config import CLAIM_RETRY_ATTEMPTS, CLAIM_RETRY_DELAY_SECONDS
from services.lead_store import LeadStore
from services.company_registry import CompanyRegistry
from services.control_gate import ControlGate
from services.distribution_engine import DistributionEngine
from services.supply_analyzer import SupplyAnalyzer
from services.lead_cleanup import LeadCleanup
from services.lead_recall import LeadRecall
from services.lead_rotation import LeadRotation
from services.admin_reporting import AdminReporting
from services.driver_migration import migrate_drivers_to_leads


class LeadPool:

    def __init__(
        self,
        db,
        retry_attempts: int = CLAIM_RETRY_ATTEMPTS,
        retry_delay: float = CLAIM_RETRY_DELAY_SECONDS
    ):
        self.db = db
        self.store = LeadStore(db)
        self.registry = CompanyRegistry(db)
        self.gate = ControlGate(db)

        self.rotation = LeadRotation(self.store)
        self.engine = DistributionEngine(
            self.store, self.registry, self.gate, rotation=self.rotation,
            retry_attempts=retry_attempts, retry_delay=retry_delay
        )
        self.analyzer = SupplyAnalyzer(self.store, self.registry)
        self.cleanup = LeadCleanup(db, self.store, self.gate)
        self.recall = LeadRecall(self.store, self.gate)
        self.reporting = AdminReporting(self.store, self.registry)

    async def migrate_drivers(self):
        return await migrate_drivers_to_leads(self.db)
