"""
Default module catalogue.

Declaration order below is the tie-break for modules with equal priority
and no dependency between them.
"""

from __future__ import annotations

from quote_kernel.domain.module import QuoteModule
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.domain.registry import ModuleRegistry
from quote_kernel.services.quote_orchestrator import QuoteOrchestrator
from quote_modules.access import (
    FurnitureLiftRecommendationModule,
    FurnitureLiftRefusalImpactModule,
    ManualHandlingRiskCostModule,
)
from quote_modules.cross_selling import PackingCostModule, PackingRequirementModule
from quote_modules.high_value import HighValueItemHandlingModule
from quote_modules.insurance import InsurancePremiumModule
from quote_modules.labor import (
    LaborBaseModule,
    VehicleSelectionModule,
    WorkersCalculationModule,
)
from quote_modules.temporal import EndOfMonthSurchargeModule, WeekendSurchargeModule
from quote_modules.transport import (
    DistanceCalculationModule,
    FuelCostModule,
    LongDistanceSurchargeModule,
    OvernightStopCostModule,
    TollCostModule,
)
from quote_modules.volume import VolumeEstimationModule, VolumeUncertaintyRiskModule


def default_modules(policy: PolicyStore) -> list[QuoteModule]:
    """Instantiate every standard module against ``policy``."""
    return [
        VolumeEstimationModule(policy.volume),
        VolumeUncertaintyRiskModule(policy.risk),
        DistanceCalculationModule(policy.distance),
        FuelCostModule(policy.fuel),
        LongDistanceSurchargeModule(policy.distance, policy.fuel),
        TollCostModule(policy.tolls),
        FurnitureLiftRecommendationModule(policy.furniture_lift),
        FurnitureLiftRefusalImpactModule(policy.furniture_lift),
        ManualHandlingRiskCostModule(policy.furniture_lift),
        VehicleSelectionModule(policy.vehicles),
        WorkersCalculationModule(policy.labor),
        LaborBaseModule(policy.labor),
        OvernightStopCostModule(policy.distance, policy.logistics, policy.labor),
        InsurancePremiumModule(policy.insurance),
        HighValueItemHandlingModule(policy.high_value),
        EndOfMonthSurchargeModule(policy.temporal),
        WeekendSurchargeModule(policy.temporal),
        PackingRequirementModule(policy.cross_sell),
        PackingCostModule(policy.cross_sell),
    ]


def build_default_registry(policy: PolicyStore) -> ModuleRegistry:
    return ModuleRegistry(default_modules(policy))


def build_orchestrator(policy: PolicyStore) -> QuoteOrchestrator:
    """Registry plus orchestrator over the standard catalogue."""
    return QuoteOrchestrator(build_default_registry(policy), policy)
