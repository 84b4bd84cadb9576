"""
Volume estimation and volume-uncertainty risk.

The estimated volume drives truck selection, crew size and packing
proposals, so it is published as the ``adjusted_volume_m3`` fact.

Estimation order:
    1. Customer-provided volume. Special items are assumed included.
    2. Housing type base volume plus special-item volumes.
    3. Rooms x volume per room plus special-item volumes.
    4. Policy default plus special-item volumes.

The result is multiplied by a safety margin chosen by the customer's
confidence level; derived estimates use wider margins than provided ones.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from quote_kernel.domain.context import QuoteContext, ServiceType
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import RiskPolicy, VolumePolicy
from quote_kernel.domain.values import ZERO
from quote_modules.facts import ADJUSTED_VOLUME, BASE_VOLUME, VOLUME_METHOD

VOLUME_ESTIMATION = "volume-estimation"
VOLUME_UNCERTAINTY_RISK = "volume-uncertainty-risk"

_VOLUME_QUANTUM = Decimal("0.01")


class VolumeEstimationModule(BaseQuoteModule):

    id = VOLUME_ESTIMATION
    priority = 20
    description = "Estimate the volume to move, with a confidence margin"
    essential = True

    def __init__(self, policy: VolumePolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.request.service_type in (ServiceType.MOVING, ServiceType.PACKING)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        req = ctx.request
        p = self._policy
        special_volume = sum(
            (p.special_item_volumes[item] for item in req.special_items), ZERO
        )
        housing = (req.housing_type or "").upper()

        if req.volume_m3 is not None and req.volume_m3 > ZERO:
            method = "USER_PROVIDED"
            base = req.volume_m3
            special_volume = ZERO
            margins = p.user_provided_margins
        else:
            margins = p.calculated_margins
            if housing in p.base_volume_by_housing:
                method = "HOUSING_TYPE"
                base = p.base_volume_by_housing[housing] + special_volume
            elif req.rooms:
                method = "ROOMS"
                base = Decimal(req.rooms) * p.volume_per_room + special_volume
            else:
                method = "DEFAULT"
                base = p.default_volume + special_volume

        margin = margins[req.volume_confidence]
        adjusted = (base * margin).quantize(_VOLUME_QUANTUM, rounding=ROUND_HALF_UP)

        return ctx.append(
            facts=[
                self.fact(BASE_VOLUME, base),
                self.fact(ADJUSTED_VOLUME, adjusted),
                self.fact(VOLUME_METHOD, method),
            ]
        ).with_metadata(
            self.id,
            {
                "method": method,
                "special_items_volume": special_volume,
                "confidence": req.volume_confidence.value,
                "margin": margin,
            },
        )


class VolumeUncertaintyRiskModule(BaseQuoteModule):
    """Risk from how confident the customer is about the volume."""

    id = VOLUME_UNCERTAINTY_RISK
    priority = 24
    dependencies = (VOLUME_ESTIMATION,)
    description = "Risk contribution from volume confidence"

    def __init__(self, policy: RiskPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return self._policy.volume_uncertainty[ctx.request.volume_confidence] > ZERO

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        confidence = ctx.request.volume_confidence
        risk = self.risk(
            self._policy.volume_uncertainty[confidence],
            f"Volume confidence {confidence.value}",
            metadata={"method": ctx.fact(VOLUME_METHOD)},
        )
        return ctx.append(risk_contributions=[risk])
