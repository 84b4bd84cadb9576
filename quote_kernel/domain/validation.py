"""
Central sanity checks on a QuoteRequest.

Runs once, before any module. Modules can then assume a well-formed
request: known service type, finite non-negative quantities, distance and
volume within policy limits, real booleans in every flag. All failures are
collected and raised together as one InvalidInputError.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import fields
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from quote_kernel.domain.context import (
    Confidence,
    ElevatorSize,
    QuoteRequest,
    ServiceType,
)
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.exceptions import InvalidInputError

# Flags that must be True or False.
BOOLEAN_FIELDS = (
    "declared_value_insurance_requested",
    "piano",
    "safe",
    "artwork",
    "force_overnight_stop",
    "packing_requested",
    "refuse_furniture_lift",
)
# Flags where None means "unknown".
OPTIONAL_BOOLEAN_FIELDS = ("pickup_has_elevator", "delivery_has_elevator")
COUNT_FIELDS = ("rooms", "pickup_floor", "delivery_floor")
ELEVATOR_SIZE_FIELDS = ("pickup_elevator_size", "delivery_elevator_size")


def _check_quantity(
    errors: list[dict[str, Any]],
    field_name: str,
    value: Any,
    upper: Decimal | None = None,
) -> None:
    if value is None:
        return
    if not isinstance(value, Decimal):
        errors.append(
            {"field": field_name, "message": f"must be a Decimal, got {type(value).__name__}"}
        )
        return
    if not value.is_finite():
        errors.append({"field": field_name, "message": "must be a finite number"})
        return
    if value < 0:
        errors.append({"field": field_name, "message": f"must be non-negative, got {value}"})
        return
    if upper is not None and value > upper:
        errors.append({"field": field_name, "message": f"must not exceed {upper}, got {value}"})


def _check_flag(
    errors: list[dict[str, Any]], field_name: str, value: Any, optional: bool = False
) -> None:
    if optional and value is None:
        return
    if not isinstance(value, bool):
        errors.append(
            {
                "field": field_name,
                "message": f"must be true or false, got {type(value).__name__} {value!r}",
            }
        )


def collect_request_errors(
    request: QuoteRequest, policy: PolicyStore
) -> list[dict[str, Any]]:
    """Return every field error in ``request``; empty when valid."""
    errors: list[dict[str, Any]] = []

    if not request.service_type:
        errors.append({"field": "service_type", "message": "must not be empty"})
    elif not isinstance(request.service_type, ServiceType):
        errors.append(
            {
                "field": "service_type",
                "message": f"unknown service type {request.service_type!r}",
            }
        )

    if not isinstance(request.volume_confidence, Confidence):
        errors.append(
            {
                "field": "volume_confidence",
                "message": f"unknown confidence {request.volume_confidence!r}",
            }
        )

    _check_quantity(errors, "volume_m3", request.volume_m3, policy.volume.max_volume_m3)
    _check_quantity(
        errors, "distance_km", request.distance_km, policy.distance.max_distance_km
    )
    _check_quantity(errors, "declared_value", request.declared_value)

    for name in BOOLEAN_FIELDS:
        _check_flag(errors, name, getattr(request, name))
    for name in OPTIONAL_BOOLEAN_FIELDS:
        _check_flag(errors, name, getattr(request, name), optional=True)

    for name in COUNT_FIELDS:
        value = getattr(request, name)
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, int) or value < 0
        ):
            errors.append({"field": name, "message": "must be a non-negative integer"})

    for name in ELEVATOR_SIZE_FIELDS:
        value = getattr(request, name)
        if value is not None and not isinstance(value, ElevatorSize):
            errors.append({"field": name, "message": f"unknown elevator size {value!r}"})

    if request.scheduled_date is not None and not isinstance(request.scheduled_date, date):
        errors.append({"field": "scheduled_date", "message": "must be a date"})

    if not isinstance(request.addresses, tuple):
        errors.append(
            {
                "field": "addresses",
                "message": f"must be a tuple of strings, got {type(request.addresses).__name__}",
            }
        )
    elif any(not isinstance(a, str) or not a.strip() for a in request.addresses):
        errors.append({"field": "addresses", "message": "addresses must be non-empty strings"})

    if not request.currency:
        errors.append({"field": "currency", "message": "must not be empty"})
    elif request.currency != policy.currency:
        errors.append(
            {
                "field": "currency",
                "message": f"policy prices in {policy.currency}, request uses {request.currency}",
            }
        )

    return errors


_REQUEST_FIELDS = frozenset(f.name for f in fields(QuoteRequest))
_DECIMAL_FIELDS = ("volume_m3", "distance_km", "declared_value")


def request_from_mapping(data: Mapping[str, Any]) -> QuoteRequest:
    """
    Build a QuoteRequest from plain data (parsed JSON or YAML).

    Numbers become Decimals through ``str`` so 0.1 stays 0.1. ISO date
    strings become dates. Flags must already be booleans: the string
    ``"false"`` is an error, not a truthy value. Range checks are left to
    ``validate_request``.

    Raises:
        InvalidInputError: Unknown keys or values that cannot be converted.
    """
    errors: list[dict[str, Any]] = []
    for key in sorted(set(data) - _REQUEST_FIELDS):
        errors.append({"field": key, "message": "unknown field"})

    values = {k: v for k, v in data.items() if k in _REQUEST_FIELDS}
    for name in _DECIMAL_FIELDS:
        raw = values.get(name)
        if raw is None or isinstance(raw, Decimal):
            continue
        if isinstance(raw, bool):
            errors.append({"field": name, "message": "must be a number"})
            continue
        try:
            values[name] = Decimal(str(raw))
        except InvalidOperation:
            errors.append({"field": name, "message": f"not a number: {raw!r}"})

    for name in BOOLEAN_FIELDS:
        if name in values:
            _check_flag(errors, name, values[name])
    for name in OPTIONAL_BOOLEAN_FIELDS:
        if name in values:
            _check_flag(errors, name, values[name], optional=True)

    scheduled = values.get("scheduled_date")
    if isinstance(scheduled, str):
        try:
            values["scheduled_date"] = date.fromisoformat(scheduled)
        except ValueError:
            errors.append({"field": "scheduled_date", "message": f"not an ISO date: {scheduled!r}"})

    if "addresses" in values:
        addresses = values["addresses"]
        if not isinstance(addresses, (list, tuple)):
            errors.append(
                {
                    "field": "addresses",
                    "message": f"must be a list of strings, got {type(addresses).__name__}",
                }
            )
        elif any(not isinstance(a, str) for a in addresses):
            errors.append({"field": "addresses", "message": "addresses must be strings"})
        else:
            values["addresses"] = tuple(addresses)

    if "service_type" not in values:
        errors.append({"field": "service_type", "message": "is required"})

    if errors:
        raise InvalidInputError(errors)
    return QuoteRequest(**values)


def validate_request(request: QuoteRequest, policy: PolicyStore) -> None:
    """
    Raise InvalidInputError listing every failed check.

    Raises:
        InvalidInputError: If any field fails validation.
    """
    errors = collect_request_errors(request, policy)
    if errors:
        raise InvalidInputError(errors)
