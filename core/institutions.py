"""
Institution registry loading.

The registry lives in data/institutions.json as an ordered list of
institutions with their transactional and marketing sender entries.
Declaration order matters: the first matching institution wins.
"""
import json
from pathlib import Path
from typing import Sequence, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from core.exceptions import ConfigurationError
from core.logger import setup_logger
from core.schema import Institution

logger = setup_logger(__name__)

InstitutionRegistry = Tuple[Institution, ...]

_REGISTRY_ADAPTER = TypeAdapter(Tuple[Institution, ...])


def _lowercase_entries(institution: Institution) -> Institution:
    return institution.model_copy(update={
        "transactional_senders": tuple(s.strip().lower() for s in institution.transactional_senders),
        "marketing_senders": tuple(s.strip().lower() for s in institution.marketing_senders),
    })


def build_registry(entries: Sequence[Union[dict, Institution]]) -> InstitutionRegistry:
    """
    Validate registry entries, keeping declaration order.

    Raises:
        ConfigurationError: If an entry is malformed or an id repeats
    """
    try:
        institutions = _REGISTRY_ADAPTER.validate_python(tuple(entries))
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid institution registry",
            details={"errors": e.errors(include_url=False)}
        )

    seen = set()
    for institution in institutions:
        if institution.id in seen:
            raise ConfigurationError(
                f"Duplicate institution id in registry: {institution.id}",
                details={"institution_id": institution.id}
            )
        seen.add(institution.id)

    return tuple(_lowercase_entries(i) for i in institutions)


def load_institution_registry(path: Union[str, Path]) -> InstitutionRegistry:
    """
    Load the institution registry from a JSON file.

    Args:
        path: Path to the registry file

    Returns:
        Immutable, ordered tuple of institutions

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    registry_file = Path(path)

    if not registry_file.exists():
        raise ConfigurationError(
            f"Institution registry not found: {registry_file}",
            details={"path": str(registry_file)}
        )

    try:
        with open(registry_file, "r", encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Failed to read institution registry: {e}",
            details={"path": str(registry_file)}
        )

    if not isinstance(entries, list) or not entries:
        raise ConfigurationError(
            "Institution registry must be a non-empty list",
            details={"path": str(registry_file)}
        )

    registry = build_registry(entries)
    logger.info(f"Loaded {len(registry)} institutions from {registry_file}")
    return registry
