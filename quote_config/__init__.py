"""
quote_config -- single public entrypoint for pricing policy.

Responsibility:
    Provides the ONLY way to obtain a PolicyStore at runtime, through
    ``get_active_policy()``. Modules and the orchestrator receive the
    returned store; nothing else reads policy files.

Architecture position:
    Configuration. Sits above ``quote_kernel`` and below
    ``quote_modules`` callers. The kernel MUST NEVER import from
    ``quote_config``.

Invariants enforced:
    - The returned store has passed ``validate_policy``.
    - Same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- no such policy set.
    - ``PolicyConfigurationError`` -- parse or validation errors.

Audit relevance:
    Every successful call emits a ``QUOTE_POLICY_TRACE`` log entry with the
    set name and checksum, tying each quote to the tariff that priced it.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from quote_config.loader import compute_checksum, load_policy_file
from quote_config.validator import PolicyValidationResult, validate_policy
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.exceptions import PolicyConfigurationError
from quote_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = [
    "PolicyValidationResult",
    "get_active_policy",
    "load_policy_file",
    "validate_policy",
]


def get_active_policy(
    set_name: str = "default",
    config_dir: Path | None = None,
) -> PolicyStore:
    """The ONLY public policy entrypoint.

    Args:
        set_name: Name of a directory under the sets directory holding a
            ``policy.yaml``.
        config_dir: Override path to the sets directory. Defaults to
            quote_config/sets/.

    Returns:
        A validated, frozen PolicyStore.

    Raises:
        FileNotFoundError: If the set does not exist.
        PolicyConfigurationError: If the file does not parse or validate.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    policy_file = sets_dir / set_name / "policy.yaml"
    if not policy_file.is_file():
        raise FileNotFoundError(f"Policy set not found: {policy_file}")

    try:
        policy = load_policy_file(policy_file)
    except (ValueError, yaml.YAMLError) as exc:
        raise PolicyConfigurationError(set_name, [str(exc)]) from exc

    validation = validate_policy(policy)
    for warning in validation.warnings:
        _logger.warning(
            "quote_policy_warning", extra={"policy_set": set_name, "warning": warning}
        )
    if not validation.is_valid:
        raise PolicyConfigurationError(set_name, validation.errors)

    _logger.info(
        "QUOTE_POLICY_TRACE",
        extra={
            "trace_type": "QUOTE_POLICY_TRACE",
            "policy_set": set_name,
            "checksum": compute_checksum(policy),
            "currency": policy.currency,
            "warning_count": len(validation.warnings),
        },
    )
    return policy
