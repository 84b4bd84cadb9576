"""
QuoteAssembler -- folds a finished context into a Quote.

Responsibility:
    Sum cost lines and adjustments into a total, sum risk contributions
    into a score, and pass every advisory category through unchanged.

Architecture position:
    Kernel > Domain. Pure. Called once per computation, after the last
    module.

Invariants enforced:
    - total_price = base_price + sum(costs) + sum(signed adjustments),
      rounded to cents. No other arithmetic on prices.
    - risk_score = sum(risk contributions). Uncapped.
    - Requirements, notes and proposals keep accumulation order.
    - manual_review_required is set when risk_score exceeds the policy
      threshold or any legal impact is CRITICAL.

Failure modes:
    - ValueError if base_price is negative.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from quote_kernel.domain.context import (
    Adjustment,
    CostCategory,
    CostLine,
    CrossSellProposal,
    InsuranceNote,
    LegalImpact,
    OperationalFlag,
    QuoteContext,
    Requirement,
    RiskContribution,
    Severity,
)
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.domain.values import ZERO, round_money, sum_money


@dataclass(frozen=True)
class Quote:
    """The priced, risk-annotated result of one computation."""

    currency: str
    base_price: Decimal
    cost_lines: tuple[CostLine, ...]
    adjustments: tuple[Adjustment, ...]
    costs_total: Decimal
    adjustments_total: Decimal
    total_price: Decimal
    risk_score: Decimal
    risk_contributions: tuple[RiskContribution, ...]
    requirements: tuple[Requirement, ...]
    legal_impacts: tuple[LegalImpact, ...]
    insurance_notes: tuple[InsuranceNote, ...]
    cross_sell_proposals: tuple[CrossSellProposal, ...]
    operational_flags: tuple[OperationalFlag, ...]
    activated_modules: tuple[str, ...]
    manual_review_required: bool
    costs_by_category: Mapping[CostCategory, Decimal] = field(
        default_factory=lambda: MappingProxyType({})
    )
    request_id: str | None = None

    def lines_for(self, module_id: str) -> tuple[CostLine, ...]:
        return tuple(c for c in self.cost_lines if c.module_id == module_id)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping. Decimals are rendered as strings."""
        return {
            "request_id": self.request_id,
            "currency": self.currency,
            "base_price": str(self.base_price),
            "cost_lines": [
                {
                    "module_id": c.module_id,
                    "label": c.label,
                    "amount": str(c.amount),
                    "category": c.category.value,
                }
                for c in self.cost_lines
            ],
            "adjustments": [
                {
                    "module_id": a.module_id,
                    "label": a.label,
                    "amount": str(a.signed_amount),
                    "kind": a.kind.value,
                }
                for a in self.adjustments
            ],
            "costs_by_category": {
                k.value: str(v) for k, v in self.costs_by_category.items()
            },
            "costs_total": str(self.costs_total),
            "adjustments_total": str(self.adjustments_total),
            "total_price": str(self.total_price),
            "risk_score": str(self.risk_score),
            "manual_review_required": self.manual_review_required,
            "requirements": [
                {
                    "type": r.type,
                    "severity": r.severity.value,
                    "reason": r.reason,
                    "module_id": r.module_id,
                }
                for r in self.requirements
            ],
            "legal_impacts": [
                {"type": li.type, "severity": li.severity.value, "message": li.message}
                for li in self.legal_impacts
            ],
            "insurance_notes": [n.message for n in self.insurance_notes],
            "cross_sell_proposals": [
                {
                    "id": p.id,
                    "label": p.label,
                    "reason": p.reason,
                    "price_impact": str(p.price_impact),
                    "optional": p.optional,
                }
                for p in self.cross_sell_proposals
            ],
            "operational_flags": [
                {"code": f.code, "message": f.message} for f in self.operational_flags
            ],
            "activated_modules": list(self.activated_modules),
        }


class QuoteAssembler:
    """Stateless summation over a final context."""

    def __init__(self, policy: PolicyStore):
        self._policy = policy

    def assemble(self, ctx: QuoteContext, base_price: Decimal = ZERO) -> Quote:
        base = round_money(base_price)
        if base < ZERO:
            raise ValueError(f"Base price must be non-negative, got {base}")

        acc = ctx.accumulator
        costs_total = sum_money(c.amount for c in acc.costs)
        adjustments_total = sum_money(a.signed_amount for a in acc.adjustments)
        risk_score = sum((r.amount for r in acc.risk_contributions), ZERO)

        by_category: dict[CostCategory, Decimal] = {}
        for line in acc.costs:
            by_category[line.category] = by_category.get(line.category, ZERO) + line.amount

        manual_review = risk_score > self._policy.risk.manual_review_threshold or any(
            li.severity is Severity.CRITICAL for li in acc.legal_impacts
        )

        return Quote(
            currency=ctx.request.currency,
            base_price=base,
            cost_lines=acc.costs,
            adjustments=acc.adjustments,
            costs_total=costs_total,
            adjustments_total=adjustments_total,
            total_price=round_money(base + costs_total + adjustments_total),
            risk_score=risk_score,
            risk_contributions=acc.risk_contributions,
            requirements=acc.requirements,
            legal_impacts=acc.legal_impacts,
            insurance_notes=acc.insurance_notes,
            cross_sell_proposals=acc.cross_sell_proposals,
            operational_flags=acc.operational_flags,
            activated_modules=acc.activated_modules,
            manual_review_required=manual_review,
            costs_by_category=MappingProxyType(by_category),
            request_id=ctx.request.request_id,
        )
